"""Entry point for the game library media server."""
from __future__ import annotations

from config import HTTP_HOST, HTTP_PORT
from web.app_factory import create_app

app = create_app()


def main() -> None:
    app.run(host=HTTP_HOST, port=HTTP_PORT)


if __name__ == '__main__':
    main()
