from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

import numpy as np
import yaml  # type: ignore[import-untyped]

from atm_diags.driver import run_diagnostics
from atm_diags.field import Field
from atm_diags.models import RunConfig


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="atm-diags", description="Compute derived atmospheric diagnostics"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the diagnostics of a configuration")
    run_parser.add_argument("config", type=Path, help="Path to YAML run config")
    run_parser.add_argument("--out", type=Path, required=True, help="Output directory")
    run_parser.add_argument(
        "--n-steps", type=int, default=None, help="Override runtime.n_steps from the config."
    )
    run_parser.add_argument(
        "--dump-npz",
        action="store_true",
        help="Write final diagnostic arrays to out/fields_final.npz.",
    )
    run_parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )

    return parser.parse_args(argv)


def _load_config(path: Path, *, n_steps: int | None = None) -> RunConfig:
    with path.open("r", encoding="utf-8") as fh:
        payload = yaml.safe_load(fh) or {}
    if not isinstance(payload, dict):
        msg = "Config file root must be a mapping/object."
        raise ValueError(msg)
    if n_steps is not None:
        payload["runtime"] = {**(payload.get("runtime") or {}), "n_steps": n_steps}
    return RunConfig.model_validate(payload)


def _json_stat(data: np.ndarray, reduce: Any) -> float | None:
    # JSON has no inf/nan; those are reported as null.
    if not data.size:
        return None
    with np.errstate(invalid="ignore"):
        value = float(reduce(data))
    return value if np.isfinite(value) else None


def _field_summary(field: Field) -> dict[str, Any]:
    fid = field.identifier
    data = np.asarray(field.data, dtype=float)
    ts = field.tracking.time_stamp
    return {
        "unit": str(fid.unit),
        "layout": fid.layout.to_string(),
        "grid": fid.grid_name,
        "dtype": field.data_type.name,
        "time_stamp": ts.isoformat() if ts is not None else None,
        "updates": field.tracking.updates,
        "min": _json_stat(data, np.min),
        "max": _json_stat(data, np.max),
        "mean": _json_stat(data, np.mean),
    }


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    text = json.dumps(payload, indent=2, sort_keys=True, allow_nan=False)
    path.write_text(text + "\n", encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.command != "run":
        return 2

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = _load_config(args.config, n_steps=args.n_steps)
    out_dir: Path = args.out
    out_dir.mkdir(parents=True, exist_ok=True)

    driver = run_diagnostics(cfg)
    outputs = driver.outputs

    _write_json(
        out_dir / "diagnostics.json",
        {
            "schema_version": "atm_diags.diagnostics.v1",
            "n_steps": cfg.runtime.n_steps,
            "fields": {f.name: _field_summary(f) for f in outputs},
        },
    )
    if args.dump_npz:
        np.savez_compressed(out_dir / "fields_final.npz", **{f.name: f.data for f in outputs})

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
