#!/usr/bin/env python3
"""Compare the message catalogs: every locale must carry every key, with no empty values.

Usage: python check_i18n.py [messages_dir]
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Set

from marquee.i18n.catalog import MESSAGES_DIR


def collect_keys(data: Dict[str, Any], prefix: str = "") -> List[str]:
    """Dotted keys of every leaf in a nested catalog"""
    keys = []
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict) and value:
            keys.extend(collect_keys(value, full_key))
        else:
            keys.append(full_key)
    return keys


def get_value(data: Dict[str, Any], key: str) -> Any:
    node: Any = data
    for part in key.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return isinstance(value, dict) and not value


def load_catalogs(messages_dir: Path) -> Dict[str, Dict[str, Any]]:
    catalogs = {}
    for path in sorted(messages_dir.glob("*.json")):
        with path.open(encoding="utf-8") as fh:
            catalogs[path.stem] = json.load(fh)
    return catalogs


def check_catalogs(catalogs: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, List[str]]]:
    """Missing and empty keys per locale, measured against the union of all catalogs"""
    keys_by_locale: Dict[str, Set[str]] = {locale: set(collect_keys(data)) for locale, data in catalogs.items()}
    all_keys: Set[str] = set().union(*keys_by_locale.values()) if keys_by_locale else set()

    report = {}
    for locale, data in catalogs.items():
        keys = keys_by_locale[locale]
        report[locale] = {
            "missing": sorted(all_keys - keys),
            "empty": sorted(k for k in keys if is_empty(get_value(data, k))),
        }
    return report


def main(messages_dir: Path) -> bool:
    catalogs = load_catalogs(messages_dir)
    if not catalogs:
        print(f"ERROR: no JSON catalogs found in {messages_dir}")
        return False

    print(f"Checking catalogs in {messages_dir}: {', '.join(catalogs)}")
    print()

    report = check_catalogs(catalogs)
    ok = True
    for locale, problems in report.items():
        if not problems["missing"] and not problems["empty"]:
            print(f"✓ {locale}")
            continue
        ok = False
        print(f"✗ {locale}")
        for key in problems["missing"]:
            print(f"    missing: {key}")
        for key in problems["empty"]:
            print(f"    empty:   {key}")

    print()
    print("All catalogs are in sync!" if ok else "ERROR: catalogs are out of sync")
    return ok


if __name__ == "__main__":
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else MESSAGES_DIR
    sys.exit(0 if main(target) else 1)
