"""Tests for the ``molscape`` command-line interface."""

from __future__ import annotations

import json

import pytest

from molscape.cli import build_parser, main


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_layout_writes_snapshot(tmp_path, capsys):
    out = tmp_path / "snap.json"
    main(["layout", "CCO", "--out", str(out)])
    assert f"Saved {out}" in capsys.readouterr().out
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["metadata"]["atom_count"] == 3
    assert payload["metadata"]["source"] == {"smiles": "CCO"}


def test_layout_options_are_applied(tmp_path):
    options = tmp_path / "options.json"
    options.write_text(json.dumps({"isomeric": False}), encoding="utf-8")
    out = tmp_path / "snap.json"
    main(["layout", "[C@@H](F)(Cl)Br", "--out", str(out),
          "--options", str(options), "--bond-length", "20"])
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["metadata"]["isomeric"] is False
    assert payload["metadata"]["options"]["bond_length"] == 20.0
    assert payload["metadata"]["options"]["bond_spacing"] == pytest.approx(3.4)
    assert all(e["wedge"] is None for e in payload["edges"])


def test_layout_prints_warnings(tmp_path, capsys):
    main(["layout", "[C@H]C", "--out", str(tmp_path / "s.json")])
    assert "warning: Stereocentre 0" in capsys.readouterr().out


def test_bad_smiles_exits_with_2(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["layout", "C1CC(", "--out", str(tmp_path / "s.json")])
    assert excinfo.value.code == 2
    assert "SMILES error" in capsys.readouterr().out
    assert not (tmp_path / "s.json").exists()


def test_unknown_option_in_file_exits_with_2(tmp_path, capsys):
    options = tmp_path / "options.json"
    options.write_text(json.dumps({"colour": "red"}), encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        main(["layout", "CC", "--out", str(tmp_path / "s.json"), "--options", str(options)])
    assert excinfo.value.code == 2
    assert "colour" in capsys.readouterr().out


def test_validate_round_trip(tmp_path, capsys):
    out = tmp_path / "snap.json"
    main(["layout", "c1ccccc1", "--out", str(out)])
    main(["validate", "--in", str(out)])
    assert capsys.readouterr().out.strip().endswith("OK")


def test_validate_rejects_broken_file(tmp_path, capsys):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"version": "1.0", "vertices": []}), encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        main(["validate", "--in", str(bad)])
    assert excinfo.value.code == 1
    assert "Missing top-level key" in capsys.readouterr().out


def test_diagnose_prints_summary_and_json(tmp_path, capsys):
    report_path = tmp_path / "report.json"
    main(["diagnose", "F/C=C/F", "--json", str(report_path)])
    out = capsys.readouterr().out
    assert "overlap score:" in out
    assert "stereobond 1: ok" in out
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["stereobonds"][0]["correct"] is True


def test_diagnose_reports_rings(capsys):
    main(["diagnose", "C1CCCCC1"])
    assert "ring 0 (size 6)" in capsys.readouterr().out


def test_render_without_input_is_an_error(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["render", "--out", str(tmp_path / "x.png")])
    assert excinfo.value.code == 2


def test_render_from_smiles(tmp_path, capsys):
    pytest.importorskip("matplotlib")
    out = tmp_path / "aspirin.png"
    main(["render", "CC(=O)Oc1ccccc1C(=O)O", "--out", str(out), "--ids"])
    assert out.exists()
    assert out.stat().st_size > 0
    assert f"Saved {out}" in capsys.readouterr().out
