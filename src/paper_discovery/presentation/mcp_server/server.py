"""
Paper Discovery MCP Server

A standalone Model Context Protocol server for multi-source paper search.

Architecture:
- instructions.py: SERVER_INSTRUCTIONS for AI agents
- tools.py: search_papers tool
- container: DI container (dependency-injector) for service lifecycle
"""

from __future__ import annotations

import logging
import sys
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import TYPE_CHECKING, Any, cast

from mcp.server.fastmcp import FastMCP

from paper_discovery.container import ApplicationContainer, create_container
from paper_discovery.shared.exceptions import CriticalConfigError
from paper_discovery.shared.settings import SearchSettings

from .instructions import SERVER_INSTRUCTIONS
from .tools import register_search_tools

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from paper_discovery.application.search import PaperSearchService

logger = logging.getLogger(__name__)

# ── Module-level DI container ──────────────────────────────────────────────
_container: ApplicationContainer | None = None


def get_container() -> ApplicationContainer:
    """Get the application DI container.

    Raises:
        RuntimeError: If ``create_server()`` has not been called yet.
    """
    if _container is None:
        msg = "Container not initialized. Call create_server() first."
        raise RuntimeError(msg)
    return _container


def _make_lifespan(
    container: ApplicationContainer,
) -> Callable[[FastMCP[Any]], AbstractAsyncContextManager[ApplicationContainer]]:
    """Create a FastMCP lifespan handler bound to *container*."""

    @asynccontextmanager
    async def _lifespan(server: FastMCP[Any]) -> AsyncIterator[ApplicationContainer]:
        logger.info("Lifecycle: startup")
        try:
            yield container
        finally:
            service = cast("PaperSearchService", container.search_service())
            await service.close()
            logger.info("Lifecycle: shutdown, source HTTP clients closed")

    return _lifespan


def create_server(
    settings: SearchSettings | None = None,
    name: str = "paper-discovery",
) -> FastMCP:
    """
    Create and configure the Paper Discovery MCP server.

    Args:
        settings: Search settings; read from the environment when omitted
        name: Server name

    Returns:
        Configured FastMCP server instance.
    """
    global _container
    logger.info("Initializing Paper Discovery MCP Server...")

    _container = create_container(settings)
    service = cast("PaperSearchService", _container.search_service())

    mcp = FastMCP(
        name,
        instructions=SERVER_INSTRUCTIONS,
        lifespan=_make_lifespan(_container),
    )
    register_search_tools(mcp, service)

    logger.info(f"Paper Discovery MCP Server ready with sources: {[s.value for s in service.orchestrator.adapters]}")
    return mcp


def main():
    """Run the MCP server."""

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        settings = SearchSettings.from_env()
    except CriticalConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    # Email: CLI arg overrides env var
    if len(sys.argv) > 1:
        settings.email = sys.argv[1]

    server = create_server(settings=settings)
    server.run()


if __name__ == "__main__":
    main()
