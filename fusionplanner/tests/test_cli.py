# File: fusionplanner/tests/test_cli.py
# Version: v0.2.0
"""
Command-line entry: FASTA in, fusion_sites.json out, exit code 2 on bad input.
"""

from __future__ import annotations

import json

import pytest

from fusionplanner.app.cli.fusion_cli import main, read_single_fasta


def _write_fasta(path, name, seq):
    lines = [f">{name}"] + [seq[i : i + 60] for i in range(0, len(seq), 60)]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def test_read_single_fasta(tmp_path):
    fasta = tmp_path / "one.fasta"
    _write_fasta(fasta, "insert_1", "acgt" * 40)
    name, seq = read_single_fasta(fasta)
    assert name == "insert_1"
    assert seq == "ACGT" * 40


def test_read_single_fasta_rejects_multiple_records(tmp_path):
    fasta = tmp_path / "two.fasta"
    fasta.write_text(">a\nACGT\n>b\nACGT\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_single_fasta(fasta)


def test_read_single_fasta_normalizes_sequence(tmp_path):
    fasta = tmp_path / "messy.fasta"
    fasta.write_text(">insert_2 demo construct\nacgt acgt\n\tACGT\n\n", encoding="utf-8")
    name, seq = read_single_fasta(fasta)
    assert name == "insert_2"
    assert seq == "ACGTACGTACGT"


def test_read_single_fasta_requires_a_record(tmp_path):
    fasta = tmp_path / "empty.fasta"
    fasta.write_text("\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_single_fasta(fasta)


def test_cli_writes_result(tmp_path, random_sequence):
    fasta = tmp_path / "insert.fasta"
    _write_fasta(fasta, "demo", random_sequence(400, seed=81))
    params = tmp_path / "params.json"
    params.write_text(
        json.dumps(
            {
                "manualCandidates": [100, 150, 200, 250, 300],
                "constraints": {"minFragmentSize": 80, "maxFragmentSize": 250, "minDistanceFromEnds": 20, "minSetFidelity": 0.5},
            }
        ),
        encoding="utf-8",
    )
    outdir = tmp_path / "out"
    main(["--fasta", str(fasta), "--outdir", str(outdir), "--fragments", "3", "--params-json", str(params)])

    data = json.loads((outdir / "fusion_sites.json").read_text(encoding="utf-8"))
    assert data["sequence_name"] == "demo"
    assert data["length"] == 400
    assert data["effectiveFragments"] == 3
    assert data["junctionCount"] == 2


def test_cli_exits_on_bad_fasta(tmp_path, capsys):
    fasta = tmp_path / "bad.fasta"
    fasta.write_text("ACGTACGT\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        main(["--fasta", str(fasta), "--outdir", str(tmp_path / "out")])
    assert exc.value.code == 2
    assert "[ERROR]" in capsys.readouterr().err
