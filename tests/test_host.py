"""Tests for the host buffer adapter and its stream policy."""

import threading

import numpy as np
import pytest

from src.mmfiber import host
from src.mmfiber.config import ENV_MAX_ITERATIONS, ENV_SEED
from src.mmfiber.datatypes import (
    SLOT_FIRST_PARAM,
    SLOT_INTENSITY,
    SLOT_L,
    SLOT_M,
    SLOT_N,
    SLOT_OBJECT_INDEX,
    SLOT_SEED,
    SLOT_X,
    SLOT_Y,
    SLOT_Z,
    SamplerConfig,
    SourceParameters,
)
from src.mmfiber.host import (
    FAILURE,
    SUCCESS,
    FiberSourcePlugin,
    SourceRequest,
    param_names,
    write_ray,
)
from src.mmfiber.source import assemble_ray


SENTINEL = -7.0


# ---- helpers ----------------------------------------------------------------

def _buffer(params=(0.1, 1.0, 2.0, 0.39), seed=0.0, size=40):
    data = np.full(size, SENTINEL)
    data[0] = size
    data[SLOT_OBJECT_INDEX] = 3.0
    data[20] = 0.55
    data[21] = 1.0
    data[SLOT_SEED] = seed
    for i, value in enumerate(params):
        if SLOT_FIRST_PARAM + i < size:
            data[SLOT_FIRST_PARAM + i] = value
    return data


def _outputs(data):
    return tuple(float(v) for v in data[SLOT_X:SLOT_INTENSITY + 1])


def _name(buffer):
    return bytes(buffer).split(b"\0", 1)[0].decode("ascii")


# ---- request translation -----------------------------------------------------

class TestSourceRequest:

    def test_reads_host_fields(self):
        request = SourceRequest.from_buffer(_buffer(params=(0.2, 2.0, 3.0, 0.1), seed=17.0))
        assert request.wavelength == 0.55
        assert request.unit_scale == 1.0
        assert request.seed == 17.0
        assert request.object_index == 3.0
        assert request.raw_params == (0.2, 2.0, 3.0, 0.1)
        assert request.parameters() == SourceParameters(0.2, 2.0, 3.0, 0.1)

    def test_params_past_end_are_absent(self):
        request = SourceRequest.from_buffer(_buffer(params=(0.2, 2.0), size=32))
        assert request.raw_params == (0.2, 2.0, None, None)
        assert request.parameters() == SourceParameters(0.2, 2.0, 2.0, 0.39)

    def test_count_slot_limits_params(self):
        data = _buffer(params=(0.2, 2.0, 3.0, 0.1))
        data[0] = 32
        request = SourceRequest.from_buffer(data)
        assert request.raw_params == (0.2, 2.0, None, None)

    def test_zero_count_means_whole_buffer(self):
        data = _buffer(params=(0.2, 2.0, 3.0, 0.1))
        data[0] = 0
        assert SourceRequest.from_buffer(data).raw_params == (0.2, 2.0, 3.0, 0.1)

    @pytest.mark.parametrize("count", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_count_means_whole_buffer(self, count):
        data = _buffer(params=(0.2, 2.0, 3.0, 0.1))
        data[0] = count
        assert SourceRequest.from_buffer(data).raw_params == (0.2, 2.0, 3.0, 0.1)

    def test_non_finite_count_still_serves_ray(self):
        plugin = FiberSourcePlugin(SamplerConfig(seed=12))
        data = _buffer()
        data[0] = float("nan")
        assert plugin.source_definition(data) == SUCCESS
        assert data[SLOT_Z] == 0.0

    @pytest.mark.parametrize("seed,expected", [(0.0, None), (-4.0, None), (12.7, 12), (float("nan"), None)])
    def test_seed_value(self, seed, expected):
        assert SourceRequest.from_buffer(_buffer(seed=seed)).seed_value == expected

    def test_works_on_plain_lists(self):
        data = list(_buffer(params=(0.3, 1.0, 2.0, 0.2)))
        assert SourceRequest.from_buffer(data).raw_params == (0.3, 1.0, 2.0, 0.2)


class TestWriteRay:

    def test_writes_only_output_slots(self):
        data = _buffer()
        before = data.copy()
        write_ray(data, assemble_ray(0.01, 0.02, 0.0, 0.0, 1.0))
        assert _outputs(data) == (0.01, 0.02, 0.0, 0.0, 0.0, 1.0, 1.0)
        np.testing.assert_array_equal(data[SLOT_INTENSITY + 1:], before[SLOT_INTENSITY + 1:])
        assert data[0] == before[0]

    def test_short_buffer_rejected(self):
        with pytest.raises(ValueError):
            write_ray([0.0] * 5, assemble_ray(0.0, 0.0, 0.0, 0.0, 1.0))


# ---- ray requests -------------------------------------------------------------

class TestSourceDefinition:

    def test_success_fills_outputs(self):
        plugin = FiberSourcePlugin(SamplerConfig(seed=1))
        data = _buffer()
        assert plugin.source_definition(data) == SUCCESS
        x, y, z, l, m, n, intensity = _outputs(data)
        assert abs(x) <= 0.2 and abs(y) <= 0.2
        assert z == 0.0
        assert intensity == 1.0
        np.testing.assert_allclose(l * l + m * m + n * n, 1.0, atol=1e-9)
        assert n > 0.0
        assert data[SLOT_OBJECT_INDEX] == 3.0
        assert list(data[SLOT_FIRST_PARAM:SLOT_FIRST_PARAM + 4]) == [0.1, 1.0, 2.0, 0.39]

    def test_invalid_params_are_defaulted(self):
        plugin = FiberSourcePlugin(SamplerConfig(seed=2))
        for _ in range(200):
            data = _buffer(params=(0.0, 0.5, -1.0, 0.0))
            assert plugin.source_definition(data) == SUCCESS
            assert abs(data[SLOT_X]) <= 0.2 and abs(data[SLOT_Y]) <= 0.2

    def test_exhaustion_returns_failure_and_leaves_outputs(self):
        plugin = FiberSourcePlugin(SamplerConfig(max_iterations=50, seed=3))
        data = _buffer(params=(0.1, 50.0, 1e5, 0.39))
        assert plugin.source_definition(data) == FAILURE
        assert _outputs(data) == (SENTINEL,) * 7

    def test_short_buffer_raises(self):
        with pytest.raises(ValueError):
            FiberSourcePlugin().source_definition([10.0, 0.0, 0.0])

    def test_non_output_slots_untouched(self):
        plugin = FiberSourcePlugin(SamplerConfig(seed=4))
        data = _buffer()
        before = data.copy()
        plugin.source_definition(data)
        untouched = [i for i in range(len(data)) if not SLOT_X <= i <= SLOT_INTENSITY]
        np.testing.assert_array_equal(data[untouched], before[untouched])


class TestStreamPolicy:

    def test_request_seed_makes_runs_reproducible(self):
        outputs = []
        for _ in range(2):
            plugin = FiberSourcePlugin()
            run = []
            for _ in range(10):
                data = _buffer(seed=99.0)
                plugin.source_definition(data)
                run.append(_outputs(data))
            outputs.append(run)
        assert outputs[0] == outputs[1]

    def test_stream_persists_across_calls(self):
        plugin = FiberSourcePlugin(SamplerConfig(seed=5))
        first, second = _buffer(), _buffer()
        plugin.source_definition(first)
        pool = plugin.pool
        plugin.source_definition(second)
        assert plugin.pool is pool
        assert pool.spawned == 1
        assert _outputs(first) != _outputs(second)

    def test_config_seed_overrides_request_seed(self):
        plugin = FiberSourcePlugin(SamplerConfig(seed=21))
        plugin.source_definition(_buffer(seed=99.0))
        assert plugin.pool.seed == 21

    def test_request_seed_used_when_config_has_none(self):
        plugin = FiberSourcePlugin()
        plugin.source_definition(_buffer(seed=99.0))
        assert plugin.pool.seed == 99

    def test_entropy_when_no_seed_anywhere(self):
        plugin = FiberSourcePlugin()
        plugin.source_definition(_buffer(seed=0.0))
        assert plugin.pool.seed is None
        assert plugin.pool.entropy is not None

    def test_one_stream_per_thread(self):
        plugin = FiberSourcePlugin(SamplerConfig(seed=6))
        codes = []
        lock = threading.Lock()

        def worker():
            for _ in range(25):
                data = _buffer()
                code = plugin.source_definition(data)
                with lock:
                    codes.append(code)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert codes == [SUCCESS] * 100
        assert plugin.pool.spawned == 4


# ---- parameter names -------------------------------------------------------------

class TestParamNames:

    @pytest.mark.parametrize("index,name", [
        (1, "Omega"),
        (2, "Alpha"),
        (3, "Rejection grid factor"),
        (4, "Fiber NA"),
        (0, ""),
        (5, ""),
        (200, ""),
    ])
    def test_name_written(self, index, name):
        buffer = bytearray(32)
        buffer[0] = index
        assert param_names(buffer) == 0
        assert _name(buffer) == name
        assert len(buffer) == 32

    def test_truncated_to_capacity(self):
        buffer = bytearray([3, 0, 0, 0, 0, 0])
        assert param_names(buffer) == 0
        assert bytes(buffer) == b"Rejec\0"

    def test_capacity_one_gives_empty_name(self):
        buffer = bytearray([1])
        assert param_names(buffer) == 0
        assert bytes(buffer) == b"\0"

    def test_empty_buffer(self):
        assert param_names(bytearray()) == 0


# ---- module-level entry points -----------------------------------------------------

class TestEntryPoints:

    @pytest.fixture(autouse=True)
    def fresh_default_plugin(self, monkeypatch):
        monkeypatch.setattr(host, "_default_plugin", None)
        monkeypatch.setenv(ENV_MAX_ITERATIONS, "40")
        monkeypatch.setenv(ENV_SEED, "8")

    def test_user_source_definition(self):
        data = _buffer()
        assert host.user_source_definition(data) == SUCCESS
        assert data[SLOT_Z] == 0.0
        assert data[SLOT_N] > 0.0
        assert host.default_plugin().config == SamplerConfig(max_iterations=40, seed=8)

    def test_user_source_definition_failure(self):
        data = _buffer(params=(0.1, 50.0, 1e5, 0.39))
        assert host.user_source_definition(data) == FAILURE

    def test_default_plugin_is_shared(self):
        assert host.default_plugin() is host.default_plugin()

    def test_user_param_names(self):
        buffer = bytearray(16)
        buffer[0] = 4
        assert host.user_param_names(buffer) == 0
        assert _name(buffer) == "Fiber NA"

    def test_direction_slots(self):
        data = _buffer()
        host.user_source_definition(data)
        np.testing.assert_allclose(
            data[SLOT_L] ** 2 + data[SLOT_M] ** 2 + data[SLOT_N] ** 2, 1.0, atol=1e-9
        )
