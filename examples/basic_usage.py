#!/usr/bin/env python3
"""
Basic usage examples for redcap-client.

Reads the API URL and token from REDCAP_API_URL and REDCAP_API_TOKEN
(or a .env file) and runs a few read-only project calls.
"""

from redcap_client import (
    Format,
    RedcapError,
    RedcapProject,
    RemoteApiError,
    configure_logging,
    get_settings,
)


def show_project_info(project: RedcapProject):
    """Print the project title and REDCap version."""
    print("=== Project Info ===")

    info = project.export_project_info()
    print(f"✓ Project: {info['project_title']}")
    print(f"✓ REDCap version: {project.export_redcap_version()}")


def show_records(project: RedcapProject):
    """Export a few records as decoded JSON and as CSV text."""
    print("\n=== Records ===")

    record_id_field = project.get_record_id_field_name()
    records = project.export_records(fields={record_id_field})
    print(f"✓ {len(records)} record rows")

    csv_text = project.export_records(Format.CSV, fields={record_id_field})
    print(f"✓ CSV export has {len(csv_text.splitlines())} lines")

    for batch in project.get_record_id_batches(50, record_id_field_name=record_id_field):
        print(f"✓ Batch of {len(batch)} record IDs starting at {batch[0]}")


def main():
    settings = get_settings()
    configure_logging(settings)

    try:
        project = RedcapProject.from_settings(settings)
        show_project_info(project)
        show_records(project)
    except RemoteApiError as e:
        print(f"❌ REDCap rejected the request: {e}")
    except RedcapError as e:
        print(f"❌ Request failed ({e.code.name}): {e}")


if __name__ == "__main__":
    main()
