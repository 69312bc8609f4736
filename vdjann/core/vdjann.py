# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT

import multiprocessing as mp
import os
import tempfile
from concurrent.futures import ProcessPoolExecutor
from typing import Iterable, List, Optional, Tuple, Union

import abutils
import polars as pl
from abutils import Sequence
from natsort import natsorted
from tqdm.auto import tqdm

from ..annotation.annotator import annotate, to_dataframe
from ..annotation.contig import Contig
from ..reference.library import ReferenceLibrary

# reference library shared by the worker processes
_LIBRARY: Optional[ReferenceLibrary] = None


def run(
    sequences: Union[str, Sequence, Iterable[Sequence]],
    reference: Union[str, ReferenceLibrary],
    project_path: Optional[str] = None,
    extended_reference: Optional[str] = None,
    receptor: Optional[str] = None,
    output_format: Union[str, Iterable[str]] = "airr",
    allow_weak: bool = True,
    allow_improper: bool = False,
    abut: bool = True,
    chunksize: int = 500,
    n_processes: Optional[int] = None,
    verbose: bool = False,
    debug: bool = False,
) -> Optional[List[Contig]]:
    """
    Annotate VDJ contigs.

    Parameters
    ----------

    sequences : Union[str, Sequence, Iterable[Sequence]]
        The contigs to annotate. Can be one of the following:

          - ``str``: path to a FASTA/Q file, path to a directory of FASTA/Q files, or a single sequence, as a string
          - ``Sequence``: a single ``abutils.Sequence`` object
          - ``Iterable[Sequence]``: an iterable of ``abutils.Sequence`` objects

        .. note::
            If `sequences` is a directory path, files in the directory will be consumed recursively, including
            files in any subfolders.

    reference : Union[str, ReferenceLibrary]
        Path to a 10x-style reference FASTA file, or a pre-loaded ``ReferenceLibrary``.

    project_path : Optional[str] = None
        If provided, the path to a directory in which tmp, log and output files will be deposited. If not provided,
        annotated contigs are returned as ``Contig`` objects.

    extended_reference : Optional[str] = None
        Path to a FASTA file of extended reference entries. Ignored if `reference` is a ``ReferenceLibrary``.

    receptor : Optional[str] = None
        Restrict the reference to ``"bcr"`` or ``"tcr"`` segments. Default is to use both. Ignored if `reference`
        is a ``ReferenceLibrary``.

    output_format : Union[str, Iterable[str]] = "airr",
        Format of the output files. Options are "airr" and "parquet". If more than one output format is
        desired, a list of multiple output formats can be provided.

    allow_weak : bool = True
        Allow short seed matches that reach 20 bases by skipping a single mismatch.

    allow_improper : bool = False
        Keep alignments that start far from the beginning of both the contig and the reference.

    abut : bool = True
        Repair V alignments that are separated by a single indel.

    chunksize : int = 500,
        Number of contigs to process at a time.

    n_processes : Optional[int] = None,
        Number of processes to use for annotation. If ``None``, the number of processes will be set to the number of
        available CPU cores.

    verbose : bool = False,
        Whether to print verbose output.

    debug : bool = False,
        If ``True``, successfully annotated contigs will be logged in addition to contigs that errored during
        annotation, and all tmp files will be retained.

    Returns
    -------
    Optional[List[Contig]]
        Annotated contigs, if `project_path` is not provided.

    """
    # output format
    if isinstance(output_format, str):
        output_format = [output_format]
    output_format = [fmt.lower() for fmt in output_format]

    # set up log/output/temp directories
    return_contigs = project_path is None
    if return_contigs:
        contigs_to_return = []
        output_format = []
        tmp_project = tempfile.TemporaryDirectory(prefix="vdjann")
        project_path = tmp_project.name
    project_path = os.path.abspath(project_path)
    log_dir = os.path.join(project_path, "logs")
    abutils.io.make_dir(log_dir)
    temp_dir = os.path.join(project_path, "tmp")
    abutils.io.make_dir(temp_dir)
    for fmt in output_format:
        abutils.io.make_dir(os.path.join(project_path, fmt))

    # reference
    if isinstance(reference, ReferenceLibrary):
        library = reference
    else:
        library = ReferenceLibrary.from_fasta(
            reference, extended_fasta=extended_reference, receptor=receptor
        )
    if verbose:
        print(f"loaded {len(library):,} reference segments")

    # process input sequences
    sequence_files = _process_inputs(sequences, temp_dir)

    # annotation config
    if n_processes is None:
        n_processes = mp.cpu_count()
    annot_kwargs = {
        "allow_weak": allow_weak,
        "allow_improper": allow_improper,
        "abut": abut,
        "log_directory": log_dir,
        "debug": debug,
        "return_contigs": return_contigs,
    }

    # polars is not fork-safe, so workers are spawned
    with ProcessPoolExecutor(
        max_workers=n_processes,
        mp_context=mp.get_context("spawn"),
        initializer=_init_worker,
        initargs=(library,),
    ) as executor:
        for sequence_file in natsorted(sequence_files):
            to_delete = []

            # parse sample name
            sample_name = _sample_name(sequence_file)
            if verbose:
                print(f"\n  {sample_name}")
                print("-" * (len(sample_name) + 4))

            # split into annotation jobs
            chunks = _chunk_sequences(sequence_file, chunksize)

            # run annotation jobs
            annotated_files = []
            failed_log_files = []
            succeeded_log_files = []
            if verbose:
                progress_bar = tqdm(total=len(chunks), desc="  - annotating")
            futures = [
                executor.submit(
                    _annotate_chunk,
                    chunk,
                    os.path.join(temp_dir, f"{sample_name}_{i}"),
                    **annot_kwargs,
                )
                for i, chunk in enumerate(chunks)
            ]
            # results are collected in submission order
            for future in futures:
                annotated, failed, succeeded, contigs = future.result()
                annotated_files.append(annotated)
                failed_log_files.append(failed)
                succeeded_log_files.append(succeeded)
                if return_contigs:
                    contigs_to_return.extend(contigs)
                if verbose:
                    progress_bar.update(1)
            if verbose:
                progress_bar.close()

            # assemble output files (including logs)
            if annotated_files and not return_contigs:
                output_df = pl.scan_parquet(natsorted(annotated_files))
                if "airr" in output_format:
                    airr_file = os.path.join(project_path, f"airr/{sample_name}.tsv")
                    output_df.sink_csv(airr_file, separator="\t")
                if "parquet" in output_format:
                    parquet_file = os.path.join(
                        project_path, f"parquet/{sample_name}.parquet"
                    )
                    output_df.sink_parquet(parquet_file)
                failed_log_file = os.path.join(log_dir, f"{sample_name}.failed")
                _assemble_logs(failed_log_files, failed_log_file)
                if debug:
                    # only log succeeded contigs in debug mode
                    succeeded_log_file = os.path.join(
                        log_dir, f"{sample_name}.succeeded"
                    )
                    _assemble_logs(succeeded_log_files, succeeded_log_file)

            # collect files for removal
            to_delete.extend(annotated_files)
            to_delete.extend(failed_log_files)
            to_delete.extend(succeeded_log_files)
            if not debug:
                _delete_files(to_delete)

    if return_contigs:
        tmp_project.cleanup()
        return contigs_to_return


def _sample_name(sequence_file: str) -> str:
    """
    Sample name from a sequence file path: the basename without its extension
    (and without a trailing ``.gz``).
    """
    name = os.path.basename(sequence_file)
    if name.endswith(".gz"):
        name = name[: -len(".gz")]
    return os.path.splitext(name)[0]


def _init_worker(library: ReferenceLibrary) -> None:
    global _LIBRARY
    _LIBRARY = library


def _annotate_chunk(
    sequences: List[Tuple[str, str, Optional[str]]],
    output_prefix: str,
    allow_weak: bool = True,
    allow_improper: bool = False,
    abut: bool = True,
    log_directory: Optional[str] = None,
    debug: bool = False,
    return_contigs: bool = False,
) -> Tuple[str, Optional[str], Optional[str], List[Contig]]:
    """
    Annotates a chunk of ``(sequence_id, sequence, quality)`` tuples in a worker
    process and writes the succeeded contigs to ``<output_prefix>.parquet``.

    Returns the output file, the failed and succeeded log files (or ``None``), and the
    annotated contigs if `return_contigs` is ``True``.
    """
    contigs = annotate(
        [Sequence(seq, id=seq_id, qual=qual) for seq_id, seq, qual in sequences],
        _LIBRARY,
        allow_weak=allow_weak,
        allow_improper=allow_improper,
        abut=abut,
    )
    failed = [c for c in contigs if c.exceptions]
    succeeded = [c for c in contigs if not c.exceptions]

    # write logs
    failed_logfile = succeeded_logfile = None
    if log_directory is not None:
        failed_logfile = f"{output_prefix}.failed"
        with open(failed_logfile, "w") as f:
            for fail in failed:
                f.write(fail.format_log())
        if debug:
            succeeded_logfile = f"{output_prefix}.succeeded"
            with open(succeeded_logfile, "w") as f:
                for succ in succeeded:
                    f.write(succ.format_log())

    # write outputs
    output_file = f"{output_prefix}.parquet"
    to_dataframe(succeeded).write_parquet(output_file)
    return output_file, failed_logfile, succeeded_logfile, contigs if return_contigs else []


def _chunk_sequences(
    sequence_file: str, chunksize: int
) -> List[List[Tuple[str, str, Optional[str]]]]:
    chunks, chunk = [], []
    for seq in abutils.io.parse_fastx(sequence_file):
        chunk.append((seq.id, seq.sequence, seq.qual))
        if len(chunk) == chunksize:
            chunks.append(chunk)
            chunk = []
    if chunk:
        chunks.append(chunk)
    return chunks


def _process_inputs(
    sequences: Union[str, Sequence, Iterable[Sequence]], temp_dir: str
) -> List[str]:
    """
    Process the various inputs accepted by vdjann and return a list of one or more sequence files.

    Parameters
    ----------
    sequences : Union[str, Sequence, Iterable[Sequence]]
        The sequences to process.

    temp_dir : str
        The path to a directory in which tmp files will be deposited.

    Returns
    -------
    sequence_files : List[str]
        A list of one or more sequence files.

    Raises
    ------
    ValueError
        If `sequences` is not a file, directory, sequence or iterable of sequences.

    """
    if isinstance(sequences, str):
        if os.path.isfile(sequences):
            return [os.path.abspath(sequences)]
        if os.path.isdir(sequences):
            return abutils.io.list_files(sequences, recursive=True)
        sequences = Sequence(sequences)
    if isinstance(sequences, Sequence):
        sequences = [sequences]
    try:
        sequences = [s if isinstance(s, Sequence) else Sequence(s) for s in sequences]
    except TypeError:
        raise ValueError(
            "Invalid input sequences. Must be a path to a file or directory, a single sequence, or an iterable of sequences."
        )
    temp_file = tempfile.NamedTemporaryFile(
        delete=False, dir=temp_dir, mode="w", suffix=".fasta"
    )
    temp_file.write("\n".join(s.fasta for s in sequences))
    temp_file.close()
    return [temp_file.name]


def _assemble_logs(log_files: Iterable[Optional[str]], combined_log_file: str) -> None:
    """
    Assemble log files into a single file.
    """
    with open(combined_log_file, "w") as f:
        for log_file in log_files:
            if log_file is not None:
                with open(log_file, "r") as log:
                    f.write(log.read())


def _delete_files(files: Iterable[Optional[str]]) -> None:
    """
    Delete a list of files.
    """
    for f in files:
        if f is not None and os.path.exists(f):
            os.remove(f)
