"""
Command-line interface for the BTA blood test allocator.
Selects conditions and modifiers, then prints the required blood tests split
into monitoring and diagnostic sections.
"""

import click
import json
import logging
import pathlib
import sys
import typing

from datetime import datetime
from stairval.notepad import Notepad, create_notepad

from .ckd import CKDStage, DEFAULT_CKD_STAGE
from .disease import QuestionKind
from .engine import DefaultAllocator, ResolvedTest
from .frequency import frequency_tag, split_frequency_groups
from .loader import load_snapshots_from_workbook
from .rules import DEFAULT_KNOWLEDGE_BASE
from .snapshot import ClinicalInputSnapshot

EMPTY_RESULT_MESSAGE = "Select one or more conditions to see the required blood tests."


@click.group()
@click.option("--verbose", is_flag=True, help="Emit debug logs to stderr")
@click.option(
    "--log-file-path",
    type=click.Path(dir_okay=False, writable=True),
    help="Append timestamped logs to this file",
)
def main(verbose: bool = False, log_file_path: typing.Optional[str] = None):
    """BTA: work out which blood tests a patient needs, and how often."""
    handlers: list[logging.Handler] = []
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path, mode="a", encoding="utf-8"))
    if verbose:
        handlers.append(logging.StreamHandler(sys.stderr))
    if handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=handlers,
        )


@main.command(name="conditions")
def conditions():
    """
    List the selectable conditions with their follow-up questions.
    """
    for disease in DEFAULT_KNOWLEDGE_BASE.diseases:
        click.echo(f"{disease.initials:4} {disease.name}  [{disease.color_class}]")
        for question in disease.questions:
            click.echo(f"       - {question.label} ({question.key.value})")
            if question.kind is QuestionKind.SELECT:
                for value, label in question.options:
                    click.echo(f"           {value:3} {label}")


@main.command(name="allocate")
@click.option(
    "-d",
    "--disease",
    "diseases",
    multiple=True,
    help="selected condition (repeat for several), e.g. -d Hypertension",
)
@click.option("--doac", is_flag=True, help="patient is on a DOAC")
@click.option("--lithium", is_flag=True, help="patient is on Lithium")
@click.option("--metformin", is_flag=True, help="patient is on Metformin")
@click.option(
    "--ckd-stage",
    type=click.Choice([stage.value for stage in CKDStage], case_sensitive=False),
    default=DEFAULT_CKD_STAGE.value,
    show_default=True,
    help="CKD stage, used when Chronic Kidney Disease is selected",
)
@click.option("-r", "--raw", is_flag=True, help="print the result as JSON")
def allocate(
    diseases: tuple[str, ...],
    doac: bool,
    lithium: bool,
    metformin: bool,
    ckd_stage: str,
    raw: bool,
):
    """
    Print the blood tests required for the selected conditions.
    """
    snapshot = ClinicalInputSnapshot(
        selected_diseases=frozenset(diseases),
        on_doac=doac,
        on_lithium=lithium,
        on_metformin=metformin,
        ckd_stage=ckd_stage,
    )

    notepad = create_notepad("allocate")
    for name in snapshot.selected_diseases:
        if DEFAULT_KNOWLEDGE_BASE.disease(name) is None:
            notepad.add_warning(f"Unknown condition {name!r} ignored")

    results = DefaultAllocator(DEFAULT_KNOWLEDGE_BASE).compute_required_tests(snapshot)

    if raw:
        click.echo(json.dumps([result.to_dict() for result in results], indent=2))
    else:
        _report_issues(notepad)
        _print_results(results)


@main.command(name="allocate-excel")
@click.option(
    "-e",
    "--excel-path",
    "excel_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="path to a workbook with one patient per row",
)
@click.option(
    "-o",
    "--output-dir",
    "output_dir",
    type=click.Path(file_okay=False),
    help="where to write one JSON file per patient (default: ./allocations/<timestamp>)",
)
def allocate_excel(excel_file: str, output_dir: typing.Optional[str] = None):
    """
    Read a patient workbook (first column = patient ID, then a 'diseases'
    column and optional modifier columns) and write each patient's required
    tests as JSON.
    """
    notepad = create_notepad("allocate-excel")
    try:
        snapshots = load_snapshots_from_workbook(
            excel_file, notepad, known_diseases=DEFAULT_KNOWLEDGE_BASE.disease_names
        )
    except (OSError, ValueError) as e:
        click.echo(f"Error: failed to read {excel_file}: {e}", err=True)
        sys.exit(1)

    _report_issues(notepad)
    if notepad.has_errors(include_subsections=True):
        sys.exit(1)

    out_dir = _prepare_output_dir(output_dir)
    allocator = DefaultAllocator(DEFAULT_KNOWLEDGE_BASE)
    for patient_id, snapshot in snapshots.items():
        results = allocator.compute_required_tests(snapshot)
        with open(out_dir / f"{patient_id}.json", "w", encoding="utf-8") as out_f:
            json.dump([result.to_dict() for result in results], out_f, indent=2)

    click.echo(f"Wrote {len(snapshots)} allocation files to {out_dir}")


def _prepare_output_dir(output_dir: typing.Optional[str] = None) -> pathlib.Path:
    if output_dir:
        path = pathlib.Path(output_dir)
    else:
        # use YYYY-MM-DD_HH-MM-SS for human-readable timestamps
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        path = pathlib.Path.cwd() / "allocations" / timestamp
    path.mkdir(parents=True, exist_ok=True)
    return path


def _report_issues(notepad: Notepad):
    if notepad.has_errors(include_subsections=True):
        click.echo("Errors found in input:")
        for err in notepad.errors():
            click.echo(f"- {err.message}")
    if notepad.has_warnings(include_subsections=True):
        click.echo("Warnings found in input:")
        for w in notepad.warnings():
            click.echo(f"- {w.message}")


def _print_results(results: list[ResolvedTest]):
    if not results:
        click.echo(EMPTY_RESULT_MESSAGE)
        return

    click.echo("Required Tests")
    for result in results:
        click.echo("")
        click.echo(click.style(result.test_name, bold=True))
        monitoring, diagnostic = split_frequency_groups(result.frequencies)
        for heading, groups in (("Monitoring", monitoring), ("Diagnostic / Other", diagnostic)):
            if not groups:
                continue
            click.echo(f"  {heading}")
            for group in groups:
                tag = frequency_tag(group.frequency)
                colored = click.style(group.frequency, fg=tag.terminal_color)
                click.echo(f"    {colored}  for {', '.join(group.diseases)}")


if __name__ == "__main__":
    main()
