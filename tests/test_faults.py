"""
Tests for the fault system: Fault taxonomy, cache faults, FaultEngine.
"""

import logging

import pytest

from tiercache.cache.faults import (
    CacheBackendFault,
    CacheConfigFault,
    CacheConnectionFault,
    CacheFault,
    CacheSerializationFault,
)
from tiercache.faults import Fault, FaultContext, FaultDomain, FaultEngine, Severity


class TestFault:

    def test_missing_fields(self):
        with pytest.raises(TypeError):
            Fault(code="X")

    def test_domain_defaults(self):
        fault = Fault(code="IO_FAILED", message="disk", domain=FaultDomain.IO)
        assert fault.severity is Severity.WARN
        assert fault.retryable is True

    def test_custom_domain_defaults(self):
        fault = Fault(code="X", message="m", domain=FaultDomain("custom"))
        assert fault.severity is Severity.ERROR
        assert fault.retryable is False

    def test_to_dict(self):
        fault = Fault(code="X", message="m", domain=FaultDomain.CONFIG, metadata={"a": 1})
        assert fault.to_dict() == {
            "code": "X",
            "message": "m",
            "domain": "config",
            "severity": "fatal",
            "retryable": False,
            "public": False,
            "metadata": {"a": 1},
        }
        assert str(fault) == "[X] m"

    def test_domain_equality(self):
        assert FaultDomain("cache") == FaultDomain.CACHE
        assert FaultDomain.CACHE == "cache"
        assert hash(FaultDomain("io")) == hash(FaultDomain.IO)


class TestCacheFaults:

    def test_hierarchy(self):
        for fault in (
            CacheConnectionFault("redis", "refused"),
            CacheSerializationFault("k", "encode", "bad"),
            CacheBackendFault("memory", "get", "boom"),
            CacheConfigFault("bad"),
        ):
            assert isinstance(fault, CacheFault)
            assert isinstance(fault, Exception)
            assert fault.domain == FaultDomain.CACHE

    def test_codes(self):
        assert CacheConnectionFault("redis", "x").code == "CACHE_CONNECTION_FAILED"
        assert CacheSerializationFault("k", "decode", "x").code == "CACHE_SERIALIZATION_FAILED"
        assert CacheBackendFault("redis", "set", "x").code == "CACHE_BACKEND_ERROR"
        assert CacheConfigFault("x").code == "CACHE_CONFIG_INVALID"

    def test_config_fault_is_fatal(self):
        fault = CacheConfigFault("no persistent store bound", store_type="int")
        assert fault.severity is Severity.FATAL
        assert fault.retryable is False
        assert fault.metadata == {"reason": "no persistent store bound", "store_type": "int"}
        assert "no persistent store bound" in fault.message

    def test_backend_fault_metadata(self):
        fault = CacheBackendFault("redis", "get_many", "timeout")
        assert fault.metadata["operation"] == "get_many"
        assert fault.retryable is True


class TestFaultEngine:

    def test_emit_records_history(self):
        engine = FaultEngine()
        ctx = engine.emit(CacheBackendFault("redis", "get", "boom"), component="redis", operation="get")
        assert isinstance(ctx, FaultContext)
        assert engine.get_history() == [ctx]
        assert ctx.to_dict()["component"] == "redis"
        assert len(ctx.trace_id) == 16

    def test_history_bounded(self):
        engine = FaultEngine(max_history=2)
        for i in range(5):
            engine.emit(CacheBackendFault("memory", f"op{i}", "x"))
        history = engine.get_history()
        assert len(history) == 2
        assert history[-1].fault.metadata["operation"] == "op4"
        assert engine.get_stats()["emitted"] == 5

    def test_clear_history(self):
        engine = FaultEngine()
        engine.emit(CacheConfigFault("x"))
        engine.clear_history()
        assert engine.get_history() == []

    def test_listeners(self):
        engine = FaultEngine()
        seen = []
        engine.on_fault(seen.append)
        engine.emit(CacheConnectionFault("redis", "refused"))
        assert [c.fault.code for c in seen] == ["CACHE_CONNECTION_FAILED"]

    def test_listener_error_isolated(self):
        engine = FaultEngine()
        seen = []

        def broken(ctx):
            raise RuntimeError("listener")

        engine.on_fault(broken)
        engine.on_fault(seen.append)
        engine.emit(CacheBackendFault("memory", "set", "x"))
        assert len(seen) == 1

    def test_log_level_follows_severity(self, caplog):
        engine = FaultEngine()
        with caplog.at_level(logging.DEBUG, logger="tiercache.faults"):
            engine.emit(CacheSerializationFault("k", "encode", "x"))
            engine.emit(CacheConfigFault("x"))
        levels = [r.levelno for r in caplog.records]
        assert levels == [logging.WARNING, logging.CRITICAL]

    def test_fingerprint_stable(self):
        engine = FaultEngine()
        a = engine.emit(CacheBackendFault("redis", "get", "x"), component="redis", operation="get")
        b = engine.emit(CacheBackendFault("redis", "get", "y"), component="redis", operation="get")
        assert a.fingerprint() == b.fingerprint()

    def test_context_captures_cause(self):
        try:
            raise ConnectionError("refused")
        except ConnectionError as e:
            ctx = FaultContext.capture(CacheBackendFault("redis", "get", str(e)), cause=e)
        assert ctx.cause is not None
        assert len(ctx.stack) >= 1
        assert "global" in str(ctx)
