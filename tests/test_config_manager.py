import json

from pixelbench.config_manager import ConfigManager
from pixelbench.models import BenchmarkSettings, TransformType


def test_defaults_when_missing(tmp_path):
    settings = ConfigManager(tmp_path / "missing.json").load()
    assert settings == BenchmarkSettings()
    assert settings.for_transform(TransformType.INVERT).small_runs == 30


def test_save_and_reload(tmp_path):
    path = tmp_path / "config.json"
    manager = ConfigManager(path)
    settings = BenchmarkSettings(max_history_items=5)
    settings.for_transform(TransformType.QUANTIZE).medium_runs = 4

    ok, error = manager.save(settings)
    assert ok and error is None

    reloaded = manager.load()
    assert reloaded.max_history_items == 5
    assert reloaded.for_transform(TransformType.QUANTIZE).medium_runs == 4
    assert reloaded.for_transform(TransformType.INVERT).medium_runs == 10


def test_partial_file_falls_back_per_field(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"runs": {"edges": {"large_runs": 2}}}))
    settings = ConfigManager(path).load()
    edges = settings.for_transform(TransformType.EDGE_DETECT)
    assert edges.large_runs == 2
    assert edges.small_runs == 30
    assert settings.pixel_diff_threshold == 1


def test_broken_file_gives_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert ConfigManager(path).load() == BenchmarkSettings()


def test_save_failure_reports_error(tmp_path):
    ok, error = ConfigManager(tmp_path / "no" / "such" / "dir.json").save(BenchmarkSettings())
    assert not ok
    assert error
