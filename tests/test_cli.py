import os

from click.testing import CliRunner

from weakcache import Cache, main
from weakcache.soak import run_soak


def test_run_soak_counts():
    with Cache(3600.0) as cache:
        result = run_soak(
            cache,
            workers=3,
            keys=4,
            duration_seconds=0.1,
            min_ttl=60.0,
            max_ttl=0,
        )
    assert result.fetches > 0
    assert 1 <= result.producer_calls <= result.fetches
    assert result.len_after_release <= 4
    assert 1 <= result.peak_len <= 4
    # The grace period keeps every released record around.
    assert result.len_after_sweep == result.len_after_release


def test_soak_command(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WEAKCACHE_GC_INTERVAL_SECONDS", "0.01")
    runner = CliRunner()
    result = runner.invoke(main, ["soak", "--workers", "2", "--keys", "4", "--duration", "0.1"])
    assert result.exit_code == 0, result.output
    assert "producer calls:" in result.output
    assert "after sweep:" in result.output


def test_soak_command_env_file(monkeypatch, tmp_path):
    # Registered so the value loaded from the file is removed afterwards.
    monkeypatch.setenv("WEAKCACHE_MIN_TTL_SECONDS", "0")
    monkeypatch.delenv("WEAKCACHE_MIN_TTL_SECONDS")
    env_file = tmp_path / "weakcache.env"
    env_file.write_text("WEAKCACHE_MIN_TTL_SECONDS=30\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(
        main,
        ["--env-file", str(env_file), "soak", "--workers", "1", "--keys", "2", "--duration", "0.05"],
    )
    assert result.exit_code == 0, result.output
    assert os.environ["WEAKCACHE_MIN_TTL_SECONDS"] == "30"


def test_soak_command_rejects_bad_interval():
    runner = CliRunner()
    result = runner.invoke(main, ["soak", "--gc-interval", "0", "--duration", "0"])
    assert result.exit_code == 2
    assert "gc_interval" in result.output


def test_soak_command_rejects_negative_ttl():
    runner = CliRunner()
    result = runner.invoke(main, ["soak", "--min-ttl", "-1", "--duration", "0"])
    assert result.exit_code == 2
    assert "--min-ttl" in result.output
