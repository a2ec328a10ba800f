"""molscape command-line interface."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional

from .io import load_json, save_json
from .options import LayoutOptions
from .pipeline import DepictionResult, layout_molecule
from .smiles import SmilesSyntaxError, parse_smiles


def _add_layout_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--bond-length", type=float)
    parser.add_argument("--no-isomeric", action="store_true", help="Ignore stereo markers")
    parser.add_argument("--implicit-hydrogens", action="store_true",
                        help="Hide hydrogens unless they sit on a ring-fusion stereocentre")
    parser.add_argument("--rotate", action="store_true", help="Level the longest extent")
    parser.add_argument("--finetune", action="store_true", help="Run the finetune overlap pass")
    parser.add_argument("--options", dest="options_path", help="JSON file of layout options")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="molscape 2-D molecule depiction")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log progress (-vv for debug)")
    sub = parser.add_subparsers(dest="command", required=True)

    layout = sub.add_parser("layout", help="Lay out a SMILES string and write the snapshot")
    layout.add_argument("smiles")
    layout.add_argument("--out", dest="output_path", required=True)
    _add_layout_arguments(layout)

    render = sub.add_parser("render", help="Render a SMILES string or snapshot to PNG")
    render.add_argument("smiles", nargs="?")
    render.add_argument("--in", dest="input_path")
    render.add_argument("--out", dest="output_path", required=True)
    render.add_argument("--dpi", type=int, default=150)
    render.add_argument("--ids", action="store_true", help="Annotate atoms with their ids")
    _add_layout_arguments(render)

    diagnose = sub.add_parser("diagnose", help="Lay out a SMILES string and report quality")
    diagnose.add_argument("smiles")
    diagnose.add_argument("--json", dest="json_path")
    _add_layout_arguments(diagnose)

    validate = sub.add_parser("validate", help="Validate a snapshot file")
    validate.add_argument("--in", dest="input_path", required=True)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "layout":
        result = _run_layout(args)
        save_json(result.snapshot, args.output_path)
        print(f"Saved {args.output_path}")

    elif args.command == "render":
        from .visualize import render_png
        if args.input_path:
            snapshot = _load(args.input_path)
        elif args.smiles:
            snapshot = _run_layout(args).snapshot
        else:
            parser.error("render needs a SMILES string or --in")
        render_png(snapshot, args.output_path, dpi=args.dpi, show_ids=args.ids)
        print(f"Saved {args.output_path}")

    elif args.command == "diagnose":
        _cmd_diagnose(args)

    elif args.command == "validate":
        _load(args.input_path)
        print("OK")


def _options(args) -> LayoutOptions:
    options = LayoutOptions()
    if args.options_path:
        payload = json.loads(Path(args.options_path).read_text(encoding="utf-8"))
        options = LayoutOptions.from_dict(payload)
    overrides = {}
    if args.bond_length is not None:
        overrides["bond_length"] = args.bond_length
        overrides["bond_spacing"] = 0.17 * args.bond_length
    if args.no_isomeric:
        overrides["isomeric"] = False
    if args.implicit_hydrogens:
        overrides["explicit_hydrogens"] = False
    if args.rotate:
        overrides["rotate_drawing"] = True
    if args.finetune:
        overrides["finetune_overlap"] = True
    return options.with_overrides(**overrides)


def _run_layout(args) -> DepictionResult:
    try:
        graph = parse_smiles(args.smiles)
        result = layout_molecule(graph, _options(args))
    except SmilesSyntaxError as exc:
        print(f"SMILES error: {exc}")
        raise SystemExit(2)
    except ValueError as exc:
        print(exc)
        raise SystemExit(2)
    for warning in result.warnings:
        print(f"warning: {warning}")
    return result


def _load(path: str) -> dict:
    try:
        return load_json(path)
    except ValueError as exc:
        print(exc)
        raise SystemExit(1)


def _cmd_diagnose(args) -> None:
    from .diagnostics import diagnostics_report

    result = _run_layout(args)
    report = diagnostics_report(result.state)
    if args.json_path:
        Path(args.json_path).write_text(json.dumps(report, indent=2), encoding="utf-8")

    overlap = report["overlap"]
    bonds = report["bond_lengths"]
    print(f"overlap score: {overlap['total']:.4f} ({len(overlap['clashing_vertices'])} clashing)")
    print(f"bond length deviation: mean={bonds['mean']:.4f} max={bonds['max']:.4f}")
    for ring_id, ring in report["rings"].items():
        regularity = ring["regularity"]
        status = {True: "ok", False: "FAIL", None: "n/a"}[regularity["passed"]]
        print(f"ring {ring_id} (size {ring['size']}): spread={regularity['radius_spread']:.4f} {status}")
    for bond in report["stereobonds"]:
        print(f"stereobond {bond['edge']}: {'ok' if bond['correct'] else 'WRONG'}")
