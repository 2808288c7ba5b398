import json
from pathlib import Path

from realdream.cli import EXIT_OK, EXIT_REJECTED, main


def run(capsys, tmp_path: Path, *args):
    code = main(["--data-dir", str(tmp_path), *args])
    out, err = capsys.readouterr()
    return code, out, err


def test_show_defaults(capsys, tmp_path: Path):
    code, out, _ = run(capsys, tmp_path, "show")
    assert code == EXIT_OK
    assert json.loads(out) == {
        "active_item_id": "light",
        "owned_item_ids": ["dark", "light"],
        "balance": 2450,
    }


def test_buy_select_and_persist(capsys, tmp_path: Path):
    code, out, _ = run(capsys, tmp_path, "buy", "ocean")
    assert code == EXIT_OK
    assert json.loads(out)["balance"] == 2351

    code, _, _ = run(capsys, tmp_path, "select", "ocean")
    assert code == EXIT_OK

    code, out, _ = run(capsys, tmp_path, "show")
    data = json.loads(out)
    assert data["active_item_id"] == "ocean"
    assert "ocean" in data["owned_item_ids"]


def test_rejections_exit_with_code(capsys, tmp_path: Path):
    code, _, err = run(capsys, tmp_path, "select", "midnight")
    assert code == EXIT_REJECTED
    assert "not_owned" in err

    code, _, err = run(capsys, tmp_path, "adjust", "-9999")
    assert code == EXIT_REJECTED
    assert "insufficient_balance" in err


def test_catalog_listing(capsys, tmp_path: Path):
    run(capsys, tmp_path, "set-balance", "100")
    code, out, _ = run(capsys, tmp_path, "catalog")
    assert code == EXIT_OK
    lines = {line.split()[0]: line for line in out.splitlines()}
    assert lines["light"].endswith("active")
    assert lines["dark"].endswith("owned")
    assert lines["midnight"].endswith("199 coins")


def test_seed_config_option(capsys, tmp_path: Path):
    seed = tmp_path / "seed.yaml"
    seed.write_text("starting_balance: 7\n", encoding="utf-8")
    code, out, _ = run(capsys, tmp_path / "data", "--seed-config", str(seed), "--dark", "show")
    assert code == EXIT_OK
    data = json.loads(out)
    assert data["balance"] == 7
    assert data["active_item_id"] == "dark"
