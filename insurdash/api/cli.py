import json
import sys
from pathlib import Path

from insurdash.config.env import get_target_config
from insurdash.exports.reports import import_report_md
from insurdash.targets.csvio import GoalCsvParseError, parse_goal_csv
from insurdash.targets.versions import TargetVersionStore

USAGE = (
    "Usage:\n"
    "  python -m insurdash.api.cli validate <targets.csv> [--md]\n"
    "  python -m insurdash.api.cli export"
)


def validate(path: str, markdown: bool = False) -> int:
    cfg = get_target_config()
    store = TargetVersionStore(base_year=cfg.base_year)
    content = Path(path).read_text(encoding="utf-8-sig")
    try:
        parsed = parse_goal_csv(content, store.known_business_types(), cfg.unknown_strategy)
        rows, issues, ignored = parsed.rows, [], parsed.ignored_unknown_count
    except GoalCsvParseError as e:
        rows, issues, ignored = e.valid_rows, [i.to_dict() for i in e.issues], 0
    if markdown:
        print(import_report_md(len(rows), issues, ignored), end="")
    else:
        print(json.dumps({
            "rows": [{"biz_type": r.biz_type, "annual_target": r.annual_target} for r in rows],
            "issues": issues,
            "ignored_unknown": ignored,
        }, ensure_ascii=False, indent=2))
    return 1 if issues else 0


def main():
    args = sys.argv[1:]
    if not args:
        print(USAGE)
        sys.exit(2)
    cmd = args[0]
    if cmd == "validate" and len(args) >= 2:
        sys.exit(validate(args[1], markdown="--md" in args[2:]))
    if cmd == "export":
        store = TargetVersionStore(base_year=get_target_config().base_year)
        print(store.export_current_version_csv(), end="")
        return
    print(USAGE)
    sys.exit(2)


if __name__ == "__main__":
    main()
