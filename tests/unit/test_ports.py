"""Tests for port interfaces."""

import pytest

from trajectwatch.core.models import Measurement, RouteResult, Traject
from trajectwatch.core.ports import (
    MeasurementLogPort,
    RouteProviderPort,
    TrajectStorePort,
)


class TestTrajectStorePort:
    """Tests for TrajectStorePort protocol."""

    @pytest.mark.core
    def test_protocol_has_register_and_list(self) -> None:
        """The protocol declares register and list."""
        assert hasattr(TrajectStorePort, "register")
        assert hasattr(TrajectStorePort, "list")

    @pytest.mark.core
    def test_class_implementing_protocol_is_recognized(self) -> None:
        """A class with register and list should satisfy TrajectStorePort."""

        class FakeStore:
            async def register(self, spec: dict) -> Traject:
                raise NotImplementedError

            async def list(self) -> list[Traject]:
                return []

        assert isinstance(FakeStore(), TrajectStorePort)

    @pytest.mark.core
    def test_class_without_register_is_not_recognized(self) -> None:
        """A class lacking register is not a TrajectStorePort."""
        class ReadOnlyStore:
            async def list(self) -> list[Traject]:
                return []

        assert not isinstance(ReadOnlyStore(), TrajectStorePort)


class TestMeasurementLogPort:
    """Tests for MeasurementLogPort protocol."""

    @pytest.mark.core
    def test_class_implementing_protocol_is_recognized(self) -> None:
        """A class with ensure, append and read_all should satisfy the port."""

        class FakeLog:
            async def ensure(self, log_file: str) -> None:
                pass

            async def append(self, log_file: str, measurement: Measurement) -> None:
                pass

            async def read_all(self, log_file: str) -> list[Measurement]:
                return []

        assert isinstance(FakeLog(), MeasurementLogPort)

    @pytest.mark.core
    def test_append_only_class_is_not_recognized(self) -> None:
        """A class lacking read_all is not a MeasurementLogPort."""
        class WriteOnlyLog:
            async def append(self, log_file: str, measurement: Measurement) -> None:
                pass

        assert not isinstance(WriteOnlyLog(), MeasurementLogPort)


class TestRouteProviderPort:
    """Tests for RouteProviderPort protocol."""

    @pytest.mark.core
    def test_class_implementing_protocol_is_recognized(self) -> None:
        """A class with the protocol methods is recognized."""

        class FakeProvider:
            async def route(
                self, origin: str, destination: str, mode: str
            ) -> RouteResult:
                return RouteResult(1, 1)

        assert isinstance(FakeProvider(), RouteProviderPort)
