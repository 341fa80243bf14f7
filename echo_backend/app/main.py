from fastapi import FastAPI

from . import routes

app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

# Register routers
app.include_router(routes.echo_router)
