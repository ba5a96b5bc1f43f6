from pi5setup.checks.hardware import device_nodes, i2c_devices, pi_model
from pi5setup.core.check import CheckStatus


def test_pi_model_reports_board(ctx):
    outcome = pi_model(ctx)
    assert outcome.status is CheckStatus.PASS
    assert outcome.detail == "Detected: Raspberry Pi 5 Model B Rev 1.0"


def test_pi_model_unreadable_is_warning(config, make_ctx, tmp_path):
    config["platform"]["model_files"] = [str(tmp_path / "gone")]
    ctx = make_ctx()
    assert pi_model(ctx).status is CheckStatus.WARN


def test_i2c_zero_one_many(ctx):
    dev = ctx.path("dev_dir")
    outcome = i2c_devices(ctx)
    assert outcome.status is CheckStatus.FAIL
    assert outcome.detail == "I2C: no interface device found - WM8960 may not work"

    (dev / "i2c-1").touch()
    assert i2c_devices(ctx).detail == f"I2C enabled - found: {dev / 'i2c-1'}"

    (dev / "i2c-20").touch()
    (dev / "i2c-13").touch()
    assert [p.name for p in device_nodes(ctx, "i2c-*")] == ["i2c-1", "i2c-13", "i2c-20"]
    assert i2c_devices(ctx).status is CheckStatus.PASS
