"""ReadLog MCP Server - Entry point.

Runs the MCP server with HTTP transport for Cloud Run deployment.
Uses Starlette with the MCP HTTP app for maximum compatibility.
"""

import logging

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route, Mount

from .shell.config import configure_logging
from .shell.mcp_server import mcp, get_config


logger = logging.getLogger(__name__)


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint for Cloud Run."""
    return JSONResponse({"status": "healthy", "service": "readlog-mcp"})


def create_app() -> Starlette:
    """Create the Starlette application with MCP at root.

    The MCP streamable_http_app() handles /mcp/ internally when mounted at root.
    We use its lifespan context to ensure proper initialization.
    """
    mcp_app = mcp.streamable_http_app()

    routes = [
        Route("/health", health_check, methods=["GET"]),
        # Mount MCP app at root - it handles /mcp/ path internally
        Mount("/", app=mcp_app),
    ]

    return Starlette(
        routes=routes,
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["http://localhost:3000"],
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["*"],
            ),
        ],
        lifespan=mcp_app.router.lifespan_context,
    )


# Create app at module level for Cloud Run
app = create_app()


def main() -> None:
    """Run the server."""
    config = get_config()
    configure_logging(config)

    logger.info("Starting ReadLog MCP server on %s:%d", config.host, config.port)

    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
