# Copyright (c) 2025 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT

"""
Tests for the batch runner and the command line interface.
"""

import multiprocessing as mp
import os

import abutils
import polars as pl
import pytest
from click.testing import CliRunner

from ..annotation.contig import Contig
from ..core.vdjann import (
    _assemble_logs,
    _chunk_sequences,
    _delete_files,
    _process_inputs,
    _sample_name,
    run,
)
from ..scripts.vdjann import cli
from .conftest import CONTIG

# =============================================
#              HELPERS
# =============================================


def test_chunk_sequences(contig_fasta):
    """Contigs are split into chunks of (id, sequence, quality) tuples."""
    chunks = _chunk_sequences(contig_fasta, chunksize=1)
    assert len(chunks) == 2
    assert chunks[0][0][:2] == ("contig_1", CONTIG)
    assert len(_chunk_sequences(contig_fasta, chunksize=500)) == 1


@pytest.mark.parametrize(
    "path, name",
    [
        ("/data/sample1.fasta", "sample1"),
        ("/data/pig.fastq.gz", "pig"),
        ("/data/plate.A1.fa", "plate.A1"),
        ("dog.gz", "dog"),
    ],
)
def test_sample_name(path, name):
    """Sample names drop the extension and a trailing .gz only."""
    assert _sample_name(path) == name


def test_process_inputs_file_and_directory(contig_fasta, tmp_path):
    """Files are used as-is and directories are listed."""
    assert _process_inputs(contig_fasta, str(tmp_path)) == [os.path.abspath(contig_fasta)]
    files = _process_inputs(os.path.dirname(contig_fasta), str(tmp_path))
    assert os.path.abspath(contig_fasta) in [os.path.abspath(f) for f in files]


def test_process_inputs_sequences(tmp_path):
    """In-memory sequences are written to a temporary FASTA file."""
    seqs = [abutils.Sequence(CONTIG, id="a"), abutils.Sequence(CONTIG, id="b")]
    files = _process_inputs(seqs, str(tmp_path))
    assert len(files) == 1
    assert [s.id for s in abutils.io.parse_fastx(files[0])] == ["a", "b"]


def test_process_inputs_invalid(tmp_path):
    """Inputs that are neither paths nor sequences are rejected."""
    with pytest.raises(ValueError):
        _process_inputs(12, str(tmp_path))


def test_assemble_and_delete_logs(tmp_path):
    """Chunk logs are concatenated and then removed."""
    parts = []
    for i in range(2):
        part = tmp_path / f"part{i}.failed"
        part.write_text(f"log {i}\n")
        parts.append(str(part))
    combined = tmp_path / "sample.failed"
    _assemble_logs(parts + [None], str(combined))
    assert combined.read_text() == "log 0\nlog 1\n"
    _delete_files(parts + [None])
    assert not any(os.path.exists(p) for p in parts)


# =============================================
#              RUN
# =============================================


def test_run_writes_outputs(contig_fasta, reference_fasta, tmp_path):
    """AIRR and parquet outputs and a failure log are written per sample."""
    project = tmp_path / "project"
    run(
        contig_fasta,
        reference_fasta,
        project_path=str(project),
        output_format=["airr", "parquet"],
        n_processes=1,
    )
    df = pl.read_parquet(str(project / "parquet" / "sample1.parquet"))
    assert df["sequence_id"].to_list() == ["contig_1", "contig_2"]
    assert df["productive"].to_list() == [True, False]
    airr = pl.read_csv(str(project / "airr" / "sample1.tsv"), separator="\t")
    assert airr.height == 2
    assert (project / "logs" / "sample1.failed").exists()
    assert not (project / "logs" / "sample1.succeeded").exists()
    assert os.listdir(project / "tmp") == []


def test_run_debug_logs_successes(contig_fasta, reference_fasta, tmp_path):
    """Debug mode also logs successfully annotated contigs."""
    project = tmp_path / "project"
    run(contig_fasta, reference_fasta, project_path=str(project), n_processes=1, debug=True)
    succeeded = (project / "logs" / "sample1.succeeded").read_text()
    assert "SEQUENCE ID: contig_1" in succeeded


def test_run_returns_contigs(reference_fasta):
    """Without a project path, annotated contigs are returned."""
    contigs = run(
        [abutils.Sequence(CONTIG, id="a")], reference_fasta, n_processes=1, chunksize=10
    )
    assert len(contigs) == 1
    assert isinstance(contigs[0], Contig)
    assert contigs[0].productive


def test_run_preserves_input_order(reference_fasta):
    """Contigs are returned in input order and no workers outlive the run."""
    ids = [f"contig_{i}" for i in range(6)]
    seqs = [
        abutils.Sequence(CONTIG if i % 2 == 0 else "ACGTA", id=seq_id)
        for i, seq_id in enumerate(ids)
    ]
    for _ in range(2):
        contigs = run(seqs, reference_fasta, n_processes=2, chunksize=1)
        assert [c.sequence_id for c in contigs] == ids
        assert [c.productive for c in contigs] == [True, False] * 3
        assert mp.active_children() == []


# =============================================
#              CLI
# =============================================


def test_cli_run(contig_fasta, reference_fasta, tmp_path):
    """The run command annotates a FASTA file into a project directory."""
    project = tmp_path / "cli_project"
    result = CliRunner().invoke(
        cli,
        [
            "run",
            contig_fasta,
            reference_fasta,
            str(project),
            "-o",
            "parquet",
            "--receptor",
            "tcr",
            "--n_processes",
            "1",
            "--quiet",
        ],
    )
    assert result.exit_code == 0, result.output
    df = pl.read_parquet(str(project / "parquet" / "sample1.parquet"))
    assert df.height == 2
    assert not (project / "airr").exists()
