"""Tests for BaseService and service inheritance."""

from pathlib import Path

import pytest

from treeq.config.settings import TreeqSettings
from treeq.domain.errors import RuleLoadError
from treeq.infrastructure.formats import Format, FormatError
from treeq.services.assertion import AssertService
from treeq.services.base import BaseService
from treeq.services.canon import CanonService
from treeq.services.diff import DiffService
from treeq.services.merge import MergeService


class TestBaseService:
    def test_default_settings(self) -> None:
        service = BaseService()
        assert service.settings.engine.max_depth == 256
        assert service.max_depth == 256

    def test_settings_stored(self, tmp_path: Path) -> None:
        config = tmp_path / "treeq.toml"
        config.write_text("[engine]\nmax_depth = 8\n")
        settings = TreeqSettings.from_cli(config_path=str(config))
        service = BaseService(settings)
        assert service.settings is settings
        assert service.max_depth == 8

    def test_failure_result(self) -> None:
        exc = RuleLoadError("rules extends cycle detected: a -> a", detail={"cycle": ["a", "a"]})
        result = BaseService._failure("assert", exc)
        assert not result.ok
        assert result.op == "assert"
        assert result.error is not None
        assert result.error.code == "USAGE_ERROR"
        assert result.error.detail == {"cycle": ["a", "a"]}

    def test_output_format(self) -> None:
        assert BaseService._output_format(None, Format.CSV) is Format.CSV
        assert BaseService._output_format("yaml", Format.JSON) is Format.YAML
        with pytest.raises(FormatError):
            BaseService._output_format("xml", Format.JSON)


ALL_SERVICES = [CanonService, DiffService, AssertService, MergeService]


class TestServiceInheritance:
    @pytest.mark.parametrize("service_cls", ALL_SERVICES, ids=lambda c: c.__name__)
    def test_inherits_base_service(self, service_cls: type) -> None:
        assert issubclass(service_cls, BaseService)

    @pytest.mark.parametrize("service_cls", ALL_SERVICES, ids=lambda c: c.__name__)
    def test_settings_injection(self, service_cls: type) -> None:
        settings = TreeqSettings.from_cli()
        assert service_cls(settings).settings is settings
