"""
Выгрузка OpenAPI схемы gateway в файл (для клиентов и ревью контракта).
Алиас /functions/v1/... в схему не попадает.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from apps.api_gateway.main import app


def main() -> int:
    parser = argparse.ArgumentParser(description="Export gateway OpenAPI schema")
    parser.add_argument("--out", type=Path, default=Path("openapi/openapi.json"))
    args = parser.parse_args()

    schema = app.openapi()
    args.out.parent.mkdir(parents=True, exist_ok=True)
    args.out.write_text(json.dumps(schema, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    print(f"Wrote {args.out} ({len(schema.get('paths', {}))} paths)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
