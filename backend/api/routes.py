"""Read-only REST views of the broker state."""

import logging

from fastapi import APIRouter, Request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# Services are attached to app.state by main.create_app()

@router.get("/health")
async def health(request: Request):
    registry = request.app.state.registry
    return {
        "status": "ok",
        "connections": len(registry),
        "devices": len(registry.list_devices()),
    }


# --- Devices ---

@router.get("/devices")
async def list_devices(request: Request):
    """Return the registered devices."""
    registry = request.app.state.registry
    return {"devices": [d.summary() for d in registry.list_devices()]}


# --- Transfers ---

@router.get("/transfers")
async def list_transfers(request: Request):
    """Return targeted transfers still waiting for their binary frame."""
    transfers = request.app.state.coordinator.pending_transfers()
    return {"transfers": [t.model_dump() for t in transfers]}


@router.get("/files")
async def list_files(request: Request):
    """Return the files held by the blob store."""
    files = await request.app.state.blob_store.list_files()
    return {"files": [f.model_dump() for f in files]}
