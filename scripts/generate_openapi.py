"""Export the support API's OpenAPI schema for client generation.

Usage:
    python -m scripts.generate_openapi --output docs/openapi.json
"""

import argparse
import json
from pathlib import Path

from helpdesk.main import app


def main() -> None:
    parser = argparse.ArgumentParser(description="Export the OpenAPI schema")
    parser.add_argument("--output", default="openapi.json", help="Target file")
    args = parser.parse_args()

    schema = app.openapi()
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(schema, indent=2, ensure_ascii=False) + "\n")
    tags = sorted(
        {
            tag
            for operations in schema["paths"].values()
            for operation in operations.values()
            for tag in operation.get("tags", [])
        }
    )
    print(f"Generated {output}: {len(schema['paths'])} paths ({', '.join(tags)})")


if __name__ == "__main__":
    main()
