"""
asgi.py -- Application assembly for tracker-auth.

The ASGI entry point servers import. Protected business routers from other
services mount here and declare Depends(require_identity) on their routes;
api/main.py itself only knows about auth.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app

__all__ = ["app"]
