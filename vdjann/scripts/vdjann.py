# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT

from typing import Iterable, Optional, Union

import click

from ..core.vdjann import run as _run


@click.group()
def cli():
    pass


@cli.command()
@click.argument(
    "sequences",
    type=str,
    # help="Path to a FASTA/Q file or a directory of FASTA/Q files. Gzip-compressed files are supported.",
)
@click.argument(
    "reference",
    type=str,
    # help="Path to a 10x-style reference FASTA file",
)
@click.argument(
    "project_path",
    type=str,
    # help="Path to a directory in which tmp, log and output files will be deposited",
)
@click.option(
    "--extended_reference",
    type=str,
    default=None,
    help="Path to a FASTA file of extended reference entries",
)
@click.option(
    "--receptor",
    type=click.Choice(["bcr", "tcr"], case_sensitive=False),
    default=None,
    help="Restrict the reference to BCR or TCR segments. Default is to use both.",
)
@click.option(
    "-o",
    "--output_format",
    type=click.Choice(["airr", "parquet"], case_sensitive=False),
    multiple=True,
    show_default=True,
    default=["airr"],
    help="Format of the output files",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Disallow weak seed matches (short matches extended across a single mismatch)",
)
@click.option(
    "--allow_improper",
    is_flag=True,
    default=False,
    help="Keep alignments that start far from the beginning of both the contig and the reference",
)
@click.option(
    "--no_abut",
    is_flag=True,
    default=False,
    help="Do not repair V alignments that are separated by a single indel",
)
@click.option(
    "-c",
    "--chunksize",
    type=int,
    show_default=True,
    default=500,
    help="Number of contigs to process at a time",
)
@click.option(
    "--n_processes",
    type=int,
    default=None,
    help="Number of processes to use for annotation",
)
@click.option(
    "--verbose/--quiet",
    default=True,
    help="Whether to print verbose output",
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Whether to run in debug mode, which results in temporary files being retained and additional logging.",
)
def run(
    sequences: str,
    reference: str,
    project_path: str,
    extended_reference: Optional[str] = None,
    receptor: Optional[str] = None,
    output_format: Union[str, Iterable[str]] = "airr",
    strict: bool = False,
    allow_improper: bool = False,
    no_abut: bool = False,
    chunksize: int = 500,
    n_processes: Optional[int] = None,
    verbose: bool = True,
    debug: bool = False,
) -> None:
    """
    Annotate VDJ contigs.

    \b
    command line arguments:
      SEQUENCES can be a FASTA/Q file or a directory of FASTA/Q files.
      REFERENCE is the path to a 10x-style reference FASTA file.
      PROJECT_PATH is the path to a directory in which tmp, log and output files will be deposited.
    """
    _run(
        sequences=sequences,
        reference=reference,
        project_path=project_path,
        extended_reference=extended_reference,
        receptor=receptor,
        output_format=output_format,
        allow_weak=not strict,
        allow_improper=allow_improper,
        abut=not no_abut,
        chunksize=chunksize,
        n_processes=n_processes,
        verbose=verbose,
        debug=debug,
    )
