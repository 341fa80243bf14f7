from fastapi import APIRouter, Depends, Request, Response

from .dependencies import verify_real_key

ECHO_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

echo_router = APIRouter(dependencies=[Depends(verify_real_key)])


@echo_router.api_route("/{path:path}", methods=ECHO_METHODS)
async def echo(request: Request) -> Response:
    """
    Send the request body back and reflect what was received.

    Response headers:
        - X-Echo-Method: request method
        - X-Echo-Path: request path as received
        - X-Echo-Query: raw query string
        - X-Echo-App-Key: X-APP_KEY as received
    """
    body = await request.body()
    headers = {
        "X-Echo-Method": request.method,
        "X-Echo-Path": request.url.path,
        "X-Echo-Query": request.url.query,
        "X-Echo-App-Key": request.headers.get("X-APP_KEY", ""),
    }
    return Response(
        content=body,
        headers=headers,
        media_type=request.headers.get("content-type", "application/octet-stream"),
    )
