"""Run the API with uvicorn: ``python -m weather_ayah``."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "weather_ayah.app:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "3000")),
        log_level=os.environ.get("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
