from keyproxy.app.main import main

main()
