"""Run the API with uvicorn: ``python -m mukando``."""

import uvicorn

from mukando.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "mukando.main:create_app",
        factory=True,
        host="0.0.0.0",  # noqa: S104
        port=8000,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
