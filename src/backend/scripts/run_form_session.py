from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_COMPOSITE_KEY = re.compile(r"^(.+?)_(\d+)_(\w+)$")


def _ensure_backend_on_path() -> None:
    backend_dir = Path(__file__).resolve().parents[1]
    if str(backend_dir) not in sys.path:
        sys.path.insert(0, str(backend_dir))


def _load_json(path: Path):
    with path.open() as handle:
        return json.load(handle)


def _load_answers(path: Path) -> dict[str, Any]:
    payload = _load_json(path)
    if not isinstance(payload, dict):
        raise ValueError(f"Answers file must contain a JSON object: {path}")
    if "answers" in payload:
        payload = payload.get("answers") or {}
    return dict(payload)


def replay_answers(template, answers: dict[str, Any], *, interpreter=None):
    """Start a session for ``template`` and apply ``answers`` in file order.

    Repeatable instances referenced by composite keys are opened as needed.
    Returns the live session.
    """
    _ensure_backend_on_path()
    from common.form_engine import FormInterpreter

    interpreter = interpreter or FormInterpreter()
    session = interpreter.start_session(template)
    repeatable = {s.id for s in template.sections if s.repeatable}

    for key, value in answers.items():
        match = _COMPOSITE_KEY.match(key)
        if match and key not in session.compiled.top_level_fields:
            section_id, index = match.group(1), int(match.group(2))
            if section_id in repeatable:
                while max(session.instances.get(section_id) or [-1]) < index:
                    interpreter.add_repeatable_instance(session, section_id)
        interpreter.set_answer(session, key, value)
    return session


def _write_markdown(view, out_path: Path, missing: list[str]) -> None:
    lines = [
        f"# {view.template_id} session {view.session_id}",
        "",
        f"State: {view.state.value}",
        "",
        "## Notifications",
    ]
    if not view.notifications:
        lines.append("- none")
    for item in view.notifications:
        line = f"- {item.code}: {item.label}"
        if item.phone:
            line += f" (call {item.phone})"
        lines.append(line)
        if item.instructions:
            lines.append(f"  - {item.instructions}")

    for section in view.sections:
        lines.append("")
        lines.append(f"## {section.title or section.id}")
        for field in section.fields:
            if not field.visible:
                continue
            value = field.value
            if hasattr(value, "model_dump"):
                value = value.model_dump(mode="json")
            elif isinstance(value, list):
                value = [v.model_dump(mode="json") if hasattr(v, "model_dump") else v for v in value]
            lines.append(f"- {field.label or field.key}: {value if value is not None else ''}")

    if missing:
        lines.append("")
        lines.append("## Missing required answers")
        for key in missing:
            lines.append(f"- {key}")
    out_path.write_text("\n".join(lines))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Replay an answers file against a form template and write the resulting view/submission."
    )
    parser.add_argument(
        "--template",
        default=None,
        help="Built-in template id (e.g. flha, incident_report, daily_flight_log).",
    )
    parser.add_argument(
        "--template-file",
        default=None,
        help="Path to a YAML or JSON template (overrides --template).",
    )
    parser.add_argument(
        "--answers",
        required=True,
        help="JSON file mapping answer keys to values.",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Output directory (defaults to the answers file's directory).",
    )
    parser.add_argument(
        "--submit",
        action="store_true",
        help="Submit the session after replaying the answers.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO).",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    _ensure_backend_on_path()
    from common.form_engine import FormInterpreter, get_builtin_template, get_engine_config, load_template
    from common.form_engine.models import ValidationFailure

    if args.template_file:
        template = load_template(args.template_file)
    elif args.template:
        template = get_builtin_template(args.template)
    else:
        raise SystemExit("Provide --template or --template-file.")

    answers_path = Path(args.answers).resolve()
    output_dir = Path(args.output_dir).resolve() if args.output_dir else answers_path.parent
    output_dir.mkdir(parents=True, exist_ok=True)

    interpreter = FormInterpreter(get_engine_config())
    session = replay_answers(template, _load_answers(answers_path), interpreter=interpreter)

    base_name = f"{template.id}_{session.session_id}"
    out_view = output_dir / f"{base_name}_view.json"
    out_md = output_dir / f"{base_name}.md"

    exit_code = 0
    missing = interpreter.missing_required(session)
    if args.submit:
        result = interpreter.submit(session)
        if isinstance(result, ValidationFailure):
            logger.warning("Submission blocked; %d required answer(s) missing", len(result.missing))
            exit_code = 1
        else:
            out_record = output_dir / f"{base_name}_submission.json"
            out_record.write_text(json.dumps(result.model_dump(mode="json"), indent=2))
            print(f"Wrote {out_record}")

    view = interpreter.view(session)
    out_view.write_text(json.dumps(view.model_dump(mode="json"), indent=2))
    _write_markdown(view, out_md, missing)

    print(f"Wrote {out_view}")
    print(f"Wrote {out_md}")
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
