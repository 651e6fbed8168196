"""Generate JSON schemas from Pydantic models and save to schemas/ directory."""

import json
from pathlib import Path

from proofguard._internal.io.record_io import RecordDocument
from proofguard.kernel.record import ComparisonReport, VerificationResult


def generate_schemas():
    """Generate JSON schemas for the persisted record and the CLI reports."""
    schemas_dir = Path(__file__).parent.parent / "schemas"
    schemas_dir.mkdir(exist_ok=True)

    for filename, model in (
        ("proof_record.schema.json", RecordDocument),
        ("verification_result.schema.json", VerificationResult),
        ("comparison_report.schema.json", ComparisonReport),
    ):
        schema_path = schemas_dir / filename
        with open(schema_path, 'w', encoding='utf-8') as f:
            json.dump(model.model_json_schema(), f, indent=2, ensure_ascii=False, sort_keys=True)
            f.write("\n")
        print(f"Generated: {schema_path}")

    print("\nSchema generation complete!")


if __name__ == "__main__":
    generate_schemas()
