"""
Command line interface for psmtsv: detect result-file formats, read and split
``.psmtsv`` files, convert MaxQuant msms files and list identifications.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import click

from psmtsv import __version__ as __version__
from psmtsv.config import Settings
from psmtsv.detection import detect_file_type
from psmtsv.exceptions import PsmTsvError
from psmtsv.headers import SchemaKind
from psmtsv.logger import configure_logging, get_logger
from psmtsv.reader import PsmGenericReader, read_psm_tsv
from psmtsv.records import split_candidates
from psmtsv.spectra import SpectraFileInfo
from psmtsv.utils import find_spectra_file
from psmtsv.writer import write_psm_tsv

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

logger = get_logger("psmtsv.cli")


def _settings(excel_compatible: bool) -> Settings:
    return Settings(write_excel_compatible_tsvs=excel_compatible)


@click.version_option(
    version=__version__, package_name="psmtsv", message="%(package)s %(version)s"
)
@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("--verbose", help="Enable verbose logging", is_flag=True)
def cli(verbose: bool = False) -> None:
    """
    psmtsv - read, write and disambiguate peptide-spectrum-match tables
    """
    configure_logging(logging.DEBUG if verbose else logging.INFO)


@cli.command("detect", short_help="Report the format of a result file")
@click.argument("result_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def detect_cmd(result_file: Path):
    """Print the detected format and the columns found in RESULT_FILE."""
    with open(result_file, "r") as f:
        header_line = f.readline()
    kind, header = detect_file_type(header_line)
    click.echo(kind.value)
    for name in header.present:
        click.echo(f"{name}\t{header[name]}")
    if kind is SchemaKind.Unknown:
        raise click.ClickException("Could not interpret header labels")


@cli.command("read", short_help="Read a result file and report unreadable lines")
@click.argument("result_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output-file",
    help="Write the records that were read as a .psmtsv file",
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option("--no-excel", help="Do not truncate cells longer than Excel allows", is_flag=True)
def read_cmd(result_file: Path, output_file: Optional[Path], no_excel: bool = False):
    """Read RESULT_FILE, print the number of records and any warnings."""
    settings = _settings(not no_excel)
    try:
        records, warnings = read_psm_tsv(str(result_file), settings)
    except PsmTsvError as e:
        raise click.ClickException(str(e))
    click.echo(f"Read {len(records)} PSMs from {result_file}")
    for warning in warnings:
        click.echo(warning)
    if output_file is not None:
        write_psm_tsv(str(output_file), records, settings=settings)


@cli.command("split", short_help="Write one row per candidate of ambiguous PSMs")
@click.argument("result_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output_file", type=click.Path(dir_okay=False, path_type=Path))
def split_cmd(result_file: Path, output_file: Path):
    """
    Split every ambiguous row of RESULT_FILE into single-candidate rows.

    Example:
        psmtsv split AllPSMs.psmtsv AllPSMs.split.psmtsv
    """
    try:
        records, _ = read_psm_tsv(str(result_file))
    except PsmTsvError as e:
        raise click.ClickException(str(e))
    rows = [single for record in records for single in split_candidates(record)]
    logger.info("Split %d PSMs into %d rows", len(records), len(rows))
    write_psm_tsv(str(output_file), rows)


@cli.command("convert-maxquant", short_help="Convert a MaxQuant msms.txt file to .psmtsv")
@click.argument("msms_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--ignore-artifact-ions", help="Skip neutral-loss fragment ions", is_flag=True)
def convert_maxquant_cmd(msms_file: Path, output_file: Path, ignore_artifact_ions: bool = False):
    """Convert MSMS_FILE to OUTPUT_FILE with bracketed modification annotations."""
    settings = Settings(ignore_artifact_ions=ignore_artifact_ions)
    try:
        records, warnings = read_psm_tsv(str(msms_file), settings)
    except PsmTsvError as e:
        raise click.ClickException(str(e))
    for warning in warnings:
        click.echo(warning)
    count = write_psm_tsv(str(output_file), records, settings=settings, passthrough=False)
    click.echo(f"Wrote {count} PSMs to {output_file}")


def _spectra_in_directory(result_file: Path, directory: Path) -> List[str]:
    """Spectra files in *directory* for every file name RESULT_FILE mentions."""
    records, _ = read_psm_tsv(str(result_file))
    names = list(dict.fromkeys(r.file_name_without_extension for r in records if r.file_name_without_extension))
    paths = []
    for name in names:
        path = find_spectra_file(name, str(directory))
        if path is None:
            logger.warning("No spectra file for %s in %s", name, directory)
        else:
            paths.append(path)
    return paths


@cli.command("identifications", short_help="List quantifiable identifications of a result file")
@click.argument("result_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--spectra-file",
    "spectra_files",
    help="Spectra file the results refer to; repeat for several files",
    multiple=True,
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option(
    "--spectra-dir",
    help="Folder searched for the spectra file of every file name in RESULT_FILE",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--q-value", help="MetaMorpheus q-value threshold", default=0.01, type=float)
def identifications_cmd(result_file: Path, spectra_files: Tuple[Path, ...], spectra_dir: Optional[Path],
                        q_value: float):
    """
    Print one tab-separated line per identification in RESULT_FILE.

    Example:
        psmtsv identifications AllPSMs.psmtsv --spectra-dir raw_files/
    """
    if not spectra_files and spectra_dir is None:
        raise click.UsageError("Give --spectra-file or --spectra-dir")
    settings = Settings(q_value_threshold=q_value, q_value_notch_threshold=q_value)
    reader = PsmGenericReader(settings)
    try:
        paths = [str(p) for p in spectra_files]
        if spectra_dir is not None:
            paths.extend(_spectra_in_directory(result_file, spectra_dir))
        identifications = reader.read_psms(str(result_file), SpectraFileInfo.from_paths(paths))
    except PsmTsvError as e:
        raise click.ClickException(str(e))

    click.echo("\t".join(["File", "Base Sequence", "Modified Sequence", "Monoisotopic Mass",
                          "Retention Time", "Charge", "Proteins"]))
    for identification in identifications:
        click.echo("\t".join([
            identification.spectra_file.filename_without_extension,
            identification.base_sequence or "",
            identification.modified_sequence,
            f"{identification.monoisotopic_mass:.5f}",
            f"{identification.ms2_retention_time:.5f}",
            str(identification.precursor_charge),
            ";".join(g.protein_group_name for g in identification.protein_groups),
        ]))


if __name__ == "__main__":
    cli()
