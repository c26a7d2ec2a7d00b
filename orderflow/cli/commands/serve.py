"""Run the HTTP API."""

from typing import Optional

import click


@click.command(name="serve")
@click.option("--host", help="Bind address (default: ORDERFLOW_API_HOST or 0.0.0.0)")
@click.option("--port", type=int, help="Port (default: ORDERFLOW_API_PORT or 8080)")
@click.option("--sweep-interval", type=float, help="Seconds between callback timeout sweeps")
def serve(host: Optional[str], port: Optional[int], sweep_interval: Optional[float]) -> None:
    """Serve the orders API with uvicorn."""
    import uvicorn

    from orderflow.api import ApiSettings, create_app

    overrides = {
        key: value
        for key, value in {"host": host, "port": port, "sweep_interval": sweep_interval}.items()
        if value is not None
    }
    api_settings = ApiSettings(**overrides)

    uvicorn.run(create_app(api_settings), host=api_settings.host, port=api_settings.port)
