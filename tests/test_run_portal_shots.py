import pytest

import run_portal_shots
from shot_models import FatalRunError, Role, RunSummary


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # keep a developer's .env and shell settings out of these tests
    monkeypatch.chdir(tmp_path)
    for key in ("PORTAL_BASE_URL", "PORTAL_SHOTS_DIR", "CONSUMER_PHONE", "CONSUMER_PIN", "RETAILER_EMAIL", "RETAILER_PASSWORD"):
        monkeypatch.delenv(key, raising=False)


def test_credentials_from_env_needs_both_values():
    creds = run_portal_shots.credentials_from_env(
        {"CONSUMER_PHONE": "250788100001", "CONSUMER_PIN": "1234", "RETAILER_EMAIL": "r@example.test"}
    )
    assert list(creds) == [Role.CONSUMER]
    assert creds[Role.CONSUMER].secret.get_secret_value() == "1234"


def test_build_config_prefers_flags_over_env():
    args = run_portal_shots.build_parser().parse_args(["--base-url", "https://flag.test/", "--out-dir", "shots", "--full-page"])
    config = run_portal_shots.build_config(args, {"PORTAL_BASE_URL": "https://env.test", "PORTAL_SHOTS_DIR": "env_shots"})

    assert config.base_url == "https://flag.test"
    assert str(config.output_dir) == "shots"
    assert config.full_page is True
    assert config.headless


def test_build_config_from_env():
    args = run_portal_shots.build_parser().parse_args([])
    config = run_portal_shots.build_config(args, {"PORTAL_BASE_URL": "https://env.test", "PORTAL_SHOTS_DIR": "env_shots"})

    assert config.base_url == "https://env.test"
    assert str(config.output_dir) == "env_shots"
    assert config.full_page is None


def test_list_flows(capsys):
    run_portal_shots.main(["--list-flows"])
    out = capsys.readouterr().out
    assert "consumer_desktop" in out
    assert "retailer_mobile" in out


def test_missing_base_url_is_usage_error():
    with pytest.raises(SystemExit) as exc:
        run_portal_shots.main([])
    assert exc.value.code == 2


def test_relative_base_url_is_usage_error():
    with pytest.raises(SystemExit) as exc:
        run_portal_shots.main(["--base-url", "portal.example.test"])
    assert exc.value.code == 2


def test_unknown_flow_is_usage_error():
    with pytest.raises(SystemExit) as exc:
        run_portal_shots.main(["--base-url", "https://portal.example.test", "--flow", "nope"])
    assert exc.value.code == 2


def test_successful_run_exits_zero(monkeypatch, tmp_path, capsys):
    seen = {}

    async def fake_run(config, plan, reporter):
        seen["flows"] = [f.name for f in plan.flows]
        seen["out"] = config.output_dir
        return RunSummary(output_dir=config.output_dir, files=["05_wallet_overview.png"])

    monkeypatch.setattr(run_portal_shots, "run_flows", fake_run)

    run_portal_shots.main(["--base-url", "https://portal.example.test", "--flow", "consumer_mobile", "--out-dir", str(tmp_path)])

    assert seen == {"flows": ["consumer_mobile"], "out": tmp_path}
    assert "1 screenshot(s)" in capsys.readouterr().out


def test_fatal_error_exits_nonzero_with_message(monkeypatch, capsys):
    async def fake_run(config, plan, reporter):
        raise FatalRunError("Flow 'consumer_desktop' step 4: Could not write prod_shots/05_wallet_overview.png")

    monkeypatch.setattr(run_portal_shots, "run_flows", fake_run)

    with pytest.raises(SystemExit) as exc:
        run_portal_shots.main(["--base-url", "https://portal.example.test"])

    assert exc.value.code == 1
    assert "Error: Flow 'consumer_desktop' step 4" in capsys.readouterr().err
