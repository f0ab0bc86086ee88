"""FastAPI application serving synteny features for genome comparison views."""
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, HTTPException, Query, Request
from pydantic import ValidationError

from adapter import AdapterConfigError, FetchAborted, FetchError, SyntenyAdapter
from logging_setup import configure_logging
from schemas import AdapterConfig, Region, SyntenyFeature
from settings import Settings, load_adapter_config


def _region(ref_name: str, start: int, end: int, assembly_name: Optional[str]) -> Region:
    try:
        return Region(ref_name=ref_name, start=start, end=end, assembly_name=assembly_name)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid region: {e.errors(include_url=False)}")


def create_app(
    config: Optional[AdapterConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        # Loaded at startup rather than at import
        adapter_config = config or load_adapter_config(settings)
        async with SyntenyAdapter(adapter_config, transport=transport) as adapter:
            app.state.adapter = adapter
            yield

    app = FastAPI(title="Synteny Adapter", version="1.0", lifespan=lifespan)
    prefix = settings.api_prefix

    # --- Feature endpoints ---

    @app.get(f"{prefix}/features")
    async def get_features(
        request: Request,
        ref_name: str = Query(alias="refName"),
        start: int = Query(),
        end: int = Query(),
        assembly_name: Optional[str] = Query(default=None, alias="assemblyName"),
    ) -> list[SyntenyFeature]:
        """Features overlapping a region, oriented for the requested assembly."""
        adapter: SyntenyAdapter = request.app.state.adapter
        region = _region(ref_name, start, end, assembly_name)
        try:
            return [feature async for feature in adapter.get_features(region)]
        except AdapterConfigError as e:
            raise HTTPException(status_code=500, detail=str(e))
        except FetchAborted as e:
            raise HTTPException(status_code=503, detail=str(e))
        except FetchError as e:
            raise HTTPException(status_code=502, detail=str(e))

    @app.get(f"{prefix}/refnames")
    async def get_ref_names(request: Request) -> list[str]:
        return await request.app.state.adapter.get_ref_names()

    @app.get(f"{prefix}/refnames/{{ref_name}}/has-data")
    async def has_data(request: Request, ref_name: str) -> dict:
        return {"hasData": await request.app.state.adapter.has_data_for_ref_name(ref_name)}

    # --- Cache endpoints ---

    @app.delete(f"{prefix}/cache")
    async def free_cache(
        request: Request,
        ref_name: Optional[str] = Query(default=None, alias="refName"),
        start: Optional[int] = Query(default=None),
        end: Optional[int] = Query(default=None),
        assembly_name: Optional[str] = Query(default=None, alias="assemblyName"),
    ) -> dict:
        """Release one region's cached features, or the whole cache."""
        adapter: SyntenyAdapter = request.app.state.adapter
        if ref_name is None:
            adapter.free_resources()
            return {"released": "all"}

        if start is None or end is None:
            raise HTTPException(status_code=422, detail="start and end are required with refName")
        region = _region(ref_name, start, end, assembly_name)
        adapter.free_resources(region)
        return {"released": adapter.cache_key(region)}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
