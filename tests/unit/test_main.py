import pytest
from typer.testing import CliRunner

from mediamirror import main as mm_main
from conftest import AUDIO_STREAM, FakeFFmpeg, FakeFFprobe, build_probe_report


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_tools(monkeypatch):
    created = {}

    def make_probe(path):
        created["ffprobe"] = FakeFFprobe(created.get("reports"))
        return created["ffprobe"]

    def make_ffmpeg(path, crf=30, debug=False):
        created["ffmpeg"] = FakeFFmpeg(created.get("fail_on"))
        created["crf"] = crf
        return created["ffmpeg"]

    monkeypatch.setattr(mm_main, "FFprobeAdapter", make_probe)
    monkeypatch.setattr(mm_main, "FFmpegAdapter", make_ffmpeg)
    return created


@pytest.mark.parametrize("arg", ["--help", "-h", "--HELP", "help", "HELP"])
def test_help_prints_usage_and_exits_1(runner, arg, media_tree):
    result = runner.invoke(mm_main.app, [arg])

    assert result.exit_code == 1
    assert "USAGE" in result.output


def test_help_anywhere_in_args(runner, media_tree, tmp_path):
    result = runner.invoke(mm_main.app, [str(media_tree), "--help"])

    assert result.exit_code == 1
    assert "USAGE" in result.output
    assert not (tmp_path / "--help").exists()


def test_wrong_argument_count_exits_1(runner, tmp_path):
    assert runner.invoke(mm_main.app, []).exit_code == 1
    result = runner.invoke(mm_main.app, [str(tmp_path), str(tmp_path / "out"), "extra"])
    assert result.exit_code == 1
    assert "USAGE" in result.output


def test_missing_target_dir_exits_1(runner, tmp_path, fake_tools):
    result = runner.invoke(mm_main.app, [str(tmp_path / "missing")])

    assert result.exit_code == 1
    assert "not a directory" in result.output


def test_missing_target_dir_leaves_output_untouched(runner, tmp_path, fake_tools):
    out = tmp_path / "out"

    result = runner.invoke(mm_main.app, [str(tmp_path / "missing"), str(out)])

    assert result.exit_code == 1
    assert not out.exists()


def test_dry_run_writes_nothing(runner, media_tree, tmp_path, fake_tools):
    before = sorted(p for p in tmp_path.rglob("*"))

    result = runner.invoke(mm_main.app, [str(media_tree)])

    assert result.exit_code == 0, result.output
    assert sorted(p for p in tmp_path.rglob("*")) == before
    assert fake_tools["ffprobe"].probed == [media_tree / "a.mp4"]
    assert fake_tools["ffmpeg"].calls == []


def test_full_run_builds_mirror(runner, media_tree, tmp_path, fake_tools):
    out = tmp_path / "out"

    result = runner.invoke(mm_main.app, [str(media_tree), str(out), "--threads", "2", "--quiet"])

    assert result.exit_code == 0, result.output
    assert (out / "root" / "a.webm").exists()
    assert (out / "root" / "sub" / "b.vtt").exists()
    assert (out / "root" / "notes.txt").read_text() == "notes"
    assert (out / "mediamirror.log").exists()


def test_validation_failure_exits_1_before_writing(runner, media_tree, tmp_path, fake_tools):
    fake_tools["reports"] = {"a.mp4": build_probe_report([AUDIO_STREAM])}
    out = tmp_path / "out"

    result = runner.invoke(mm_main.app, [str(media_tree), str(out)])

    assert result.exit_code == 1
    assert "no video streams" in result.output
    assert not out.exists()


def test_task_failures_exit_0_unless_strict(runner, media_tree, tmp_path, fake_tools):
    fake_tools["fail_on"] = ["b.srt"]

    result = runner.invoke(mm_main.app, [str(media_tree), str(tmp_path / "out1")])
    assert result.exit_code == 0
    assert "1 task(s) failed" in result.output

    result = runner.invoke(mm_main.app, [str(media_tree), str(tmp_path / "out2"), "--strict"])
    assert result.exit_code == 1
    assert "b.srt" in result.output


def test_config_file_overrides(runner, media_tree, tmp_path, fake_tools):
    conf = tmp_path / "conf.yaml"
    conf.write_text("encode:\n  crf: 40\n")

    result = runner.invoke(mm_main.app, [str(media_tree), "--config", str(conf)])

    assert result.exit_code == 0, result.output
    assert fake_tools["crf"] == 40


def test_missing_config_file_exits_1(runner, media_tree, tmp_path, fake_tools):
    result = runner.invoke(mm_main.app, [str(media_tree), "-c", str(tmp_path / "nope.yaml")])

    assert result.exit_code == 1
    assert "Config file not found" in result.output
