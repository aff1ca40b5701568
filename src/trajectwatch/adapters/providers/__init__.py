"""Route provider adapters implementing RouteProviderPort."""

from trajectwatch.adapters.providers.google import (
    DistanceMatrixProvider,
    RoutesProvider,
)

__all__ = ["DistanceMatrixProvider", "RoutesProvider"]
