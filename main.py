"""WSGI entrypoint for the recipe service.

Containerized deployments serve the ``app`` object below with Gunicorn.
Running ``python main.py`` starts the threaded Flask development server on
``PORT`` (default 5000).
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

from recipe_service import create_app  # noqa: E402

app = create_app()


if __name__ == "__main__":
    port = int(os.environ.get("PORT", "5000"))
    app.logger.info("Server running on port %s", port)
    app.run(host="0.0.0.0", port=port, threaded=True)


__all__ = ["app"]
