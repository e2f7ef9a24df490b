"""
Serve the API with uvicorn.
Run: python -m api (from repo root, with .env or env vars set).
"""
import os

import uvicorn

from api.main import app


def main() -> None:
    host = os.environ.get("HOST", "0.0.0.0").strip() or "0.0.0.0"
    port = int(os.environ.get("PORT", "3000"))
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
