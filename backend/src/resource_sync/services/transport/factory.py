"""Transport factory."""

import logging
from typing import Any, Optional

import httpx

from resource_sync.core.config import Settings
from resource_sync.models.resource import ResourceDefinition
from resource_sync.services.transport.base import ResourceTransport
from resource_sync.services.transport.http_service import HttpResourceTransport

logger = logging.getLogger(__name__)

SANDBOX_BASE_URL = "http://sandbox"


class TransportFactory:
    """The factory for the resource transports."""

    @staticmethod
    def create_transport(
        settings: Settings,
        resource: ResourceDefinition,
        app: Optional[Any] = None,
    ) -> Optional[ResourceTransport]:
        """Create a transport for ``resource``.

        ``app`` lets several sandbox transports share one in-process API
        instance; a fresh one is built when omitted.
        """
        transport_type = settings.transport
        logger.info(f"Creating {transport_type} transport for resource: {resource.name}")

        if transport_type == "http":
            return HttpResourceTransport.from_url(
                resource,
                settings.api_base_url,
                token=settings.api_token,
                timeout=settings.request_timeout,
            )
        elif transport_type == "sandbox":
            if app is None:
                from resource_sync.main import create_app

                app = create_app(settings)
            logger.info("Using in-process sandbox API")
            return HttpResourceTransport.from_url(
                resource,
                SANDBOX_BASE_URL,
                token=settings.api_token,
                timeout=settings.request_timeout,
                transport=httpx.ASGITransport(app=app),
            )
        else:
            logger.warning(f"No transport found for type: {transport_type}")
            return None
