"""
FastAPI application serving the piece index and stored objects.

Endpoints:
  GET  /api/list?search=<phrase>&limit=<n>  - Pieces matching a phrase
  GET  /api/get?name=<key>&bucket=<bucket>   - Raw bytes of a stored object
"""

import asyncio
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, Response

from core.errors import BlobNotFoundError, BlobStoreError, QueryError
from core.search.resolver import DEFAULT_LIMIT, QueryResolver
from core.storage.base import BlobStore, TransactionalStore

logger = logging.getLogger(__name__)


def parse_limit(raw: Optional[str], default: int) -> int:
    """Parse the ``limit`` query parameter"""
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"limit ({raw}) must be a number")


def create_app(
    store: TransactionalStore,
    blobs: BlobStore,
    default_limit: int = DEFAULT_LIMIT
) -> FastAPI:
    """
    Build the API application.

    Args:
        store: Document store holding pieces and the index
        blobs: Object store holding album art and uploaded contents
        default_limit: Limit used when a request gives none

    Returns:
        Configured FastAPI application
    """
    resolver = QueryResolver(store, default_limit=default_limit)
    app = FastAPI(title="benten")
    app.state.resolver = resolver
    app.state.blobs = blobs

    @app.get("/api/list")
    async def list_pieces(search: str = "", limit: Optional[str] = None):
        """Pieces whose title, album or artists contain ``search``."""
        parsed = parse_limit(limit, default_limit)
        try:
            pieces = await asyncio.to_thread(resolver.search, search, parsed)
        except QueryError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return JSONResponse([p.to_dict() for p in pieces])

    @app.get("/api/get")
    async def get_object(name: str, bucket: str):
        """Raw object bytes with their stored content type."""
        try:
            data, content_type = await blobs.get(bucket, name)
        except BlobNotFoundError:
            raise HTTPException(status_code=404, detail=f"{bucket}/{name} not found")
        except BlobStoreError as e:
            logger.error(f"Failed to read {bucket}/{name}: {e}")
            raise HTTPException(status_code=500, detail="Failed to read object")
        return Response(content=data, media_type=content_type)

    return app
