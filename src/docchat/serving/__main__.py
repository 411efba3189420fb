"""Run the API with uvicorn: ``python -m docchat.serving``."""

import uvicorn

from docchat.config import load_settings
from docchat.serving.app import create_app


def main() -> None:
    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
