from pathlib import Path

from pi5setup.core.configfile import ConfigFile


def test_missing_file_reads_empty(tmp_path: Path):
    cfg = ConfigFile(tmp_path / "absent.conf")
    assert not cfg.exists()
    assert cfg.read() == ""
    assert cfg.active_lines() == []
    assert cfg.block("anything") is None


def test_ensure_line_appends_once(tmp_path: Path):
    path = tmp_path / "config.txt"
    path.write_text("camera_auto_detect=1")
    cfg = ConfigFile(path)

    assert cfg.ensure_line("dtoverlay=seeed-voicecard", comment="WM8960 Audio HAT Configuration")
    first = path.read_bytes()
    assert first == (
        b"camera_auto_detect=1\n\n# WM8960 Audio HAT Configuration\ndtoverlay=seeed-voicecard\n"
    )

    assert cfg.ensure_line("dtoverlay=seeed-voicecard", comment="WM8960 Audio HAT Configuration") is False
    assert path.read_bytes() == first


def test_ensure_line_ignores_commented_copy(tmp_path: Path):
    path = tmp_path / "config.txt"
    path.write_text("#dtoverlay=seeed-voicecard\n")
    cfg = ConfigFile(path)

    assert not cfg.has_line("dtoverlay=seeed-voicecard")
    assert cfg.ensure_line("dtoverlay=seeed-voicecard")
    assert cfg.has_line("dtoverlay=seeed-voicecard")
    assert path.read_text().count("dtoverlay=seeed-voicecard") == 2


def test_comment_out_disables_every_active_copy(tmp_path: Path):
    path = tmp_path / "config.txt"
    path.write_text("dtparam=audio=on\nfoo=1\n  dtparam=audio=on\n#dtparam=audio=on\n")
    cfg = ConfigFile(path)

    assert cfg.comment_out("dtparam=audio=on")
    assert path.read_text() == "#dtparam=audio=on\nfoo=1\n#dtparam=audio=on\n#dtparam=audio=on\n"
    assert cfg.comment_out("dtparam=audio=on") is False


def test_ensure_block_appends_then_replaces_in_place(tmp_path: Path):
    path = tmp_path / "daemon.conf"
    path.write_text("; stock settings\nexit-idle-time = 20\n")
    cfg = ConfigFile(path)

    assert cfg.ensure_block("latency", "default-fragments = 2")
    assert cfg.block("latency") == "default-fragments = 2"
    path.write_text(path.read_text() + "trailer = yes\n")

    assert cfg.ensure_block("latency", "default-fragments = 4\ndefault-fragment-size-msec = 5")
    text = path.read_text()
    assert text.count("# --- pi5setup latency start ---") == 1
    assert "default-fragments = 2" not in text
    assert text.startswith("; stock settings\nexit-idle-time = 20\n")
    assert text.endswith("# --- pi5setup latency end ---\ntrailer = yes\n")


def test_ensure_block_is_byte_stable(tmp_path: Path):
    path = tmp_path / "daemon.conf"
    cfg = ConfigFile(path)
    cfg.ensure_block("latency", "a = 1\nb = 2\n")
    first = path.read_bytes()

    assert cfg.ensure_block("latency", "a = 1\nb = 2\n") is False
    assert path.read_bytes() == first


def test_unterminated_marker_does_not_swallow_file(tmp_path: Path):
    path = tmp_path / "daemon.conf"
    path.write_text("# --- pi5setup latency start ---\nkeep = me\n")
    cfg = ConfigFile(path)

    assert cfg.block("latency") is None
    cfg.ensure_block("latency", "a = 1")
    text = path.read_text()
    assert "keep = me" in text
    assert cfg.block("latency") == "a = 1"


def test_ensure_content_only_writes_on_difference(tmp_path: Path):
    path = tmp_path / "asound.conf"
    cfg = ConfigFile(path)

    assert cfg.ensure_content("defaults.pcm.card 1\n")
    assert cfg.matches("defaults.pcm.card 1\n")
    mtime = path.stat().st_mtime_ns
    assert cfg.ensure_content("defaults.pcm.card 1\n") is False
    assert path.stat().st_mtime_ns == mtime
