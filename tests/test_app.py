import json

from PIL import Image

from pixelbench.app import main


def test_run_invert(image_file, tmp_path):
    output = tmp_path / "inverted.png"
    assert main(["--config", str(tmp_path / "c.json"), "run", "invert", str(image_file), "-o", str(output)]) == 0
    assert Image.open(output).convert("RGBA").getpixel((0, 0)) == (0, 255, 255, 255)


def test_run_quantize_two_colors(image_file, tmp_path):
    output = tmp_path / "quantized.png"
    assert main(["run", "quantize", str(image_file), "--colors", "2", "-o", str(output)]) == 0
    colors = Image.open(output).convert("RGB").getcolors()
    assert sorted(c for _, c in colors) == [(0, 0, 255), (255, 0, 0)]


def test_bench_writes_csv(image_file, tmp_path):
    csv_path = tmp_path / "bench.csv"
    args = [
        "--config", str(tmp_path / "c.json"),
        "bench", "edges", str(image_file),
        "--mode", "continuous", "--runs", "2", "--csv", str(csv_path),
    ]
    assert main(args) == 0
    assert csv_path.read_text().startswith("Run,")


def test_bad_input_returns_error(tmp_path, capsys):
    missing = tmp_path / "missing.png"
    assert main(["run", "invert", str(missing)]) == 1
    assert "Failed to load image" in capsys.readouterr().err


def test_bench_compare_methods(image_file, tmp_path, capsys):
    csv_path = tmp_path / "compare.csv"
    args = [
        "--config", str(tmp_path / "c.json"),
        "bench", "quantize", str(image_file),
        "--colors", "2", "--runs", "2", "--compare", "sklearn", "--csv", str(csv_path),
    ]
    assert main(args) == 0
    out = capsys.readouterr().out
    assert "Speedup of sklearn over kmeans" in out
    assert "outputs identical" in out
    # One row per method
    assert len(csv_path.read_text().strip().splitlines()) == 3


def test_bench_compare_needs_quantize(image_file, tmp_path, capsys):
    args = [
        "--config", str(tmp_path / "c.json"),
        "bench", "invert", str(image_file), "--compare", "sklearn",
    ]
    assert main(args) == 1
    assert "--compare only applies" in capsys.readouterr().err


def test_config_saves_and_reloads(image_file, tmp_path, capsys):
    config = tmp_path / "c.json"
    assert main(["--config", str(config), "config", "--small-runs", "2", "--history", "4"]) == 0
    assert main(["--config", str(config), "config", "--transform", "edges", "--small-runs", "5"]) == 0

    data = json.loads(config.read_text())
    assert data["max_history_items"] == 4
    assert data["runs"]["invert"]["small_runs"] == 2
    assert data["runs"]["edges"]["small_runs"] == 5

    capsys.readouterr()
    assert main(["--config", str(config), "bench", "invert", str(image_file)]) == 0
    assert "2 runs" in capsys.readouterr().out


def test_config_reset(tmp_path):
    config = tmp_path / "c.json"
    assert main(["--config", str(config), "config", "--large-runs", "3"]) == 0
    assert main(["--config", str(config), "config", "--reset"]) == 0

    data = json.loads(config.read_text())
    assert data["runs"]["quantize"]["large_runs"] == 1
    assert data["max_history_items"] == 10


def test_config_save_failure_returns_error(tmp_path, capsys):
    config = tmp_path / "missing_dir" / "c.json"
    assert main(["--config", str(config), "config"]) == 1
    assert "Could not save settings" in capsys.readouterr().err
