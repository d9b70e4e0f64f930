"""
Terminal Inspection
Walks an operator through the checklist for one forklift and submits the report

Usage:
    python scripts/run_inspection.py --unit FL001 --username op1 --photo part.jpg
    FORKCHECK_DATA_SOURCE=offline python scripts/run_inspection.py --unit FL001 --photo part.jpg
"""

import argparse
import base64
import getpass
import logging
import mimetypes
import sys
from pathlib import Path

# Add parent directory to path
sys.path.append(str(Path(__file__).parent.parent))

from forkcheck.client import ClientError, ClientSettings, DataSource, OnlineRepository, open_data_source
from forkcheck.services.inspection_workflow import InspectionWorkflow, WorkflowError

logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def photo_to_data_uri(path: Path) -> str:
    mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def ask_item(workflow: InspectionWorkflow, photo: str):
    step = workflow.current_item
    print(f"\n[{workflow.completed_count + 1}/{workflow.total_count}] {step.part_name}")
    if step.description:
        print(f"  {step.description}")
    answer = input(f"  {step.question} [y]es / [n]o / [q]r scan: ").strip().lower()

    if answer.startswith("q"):
        payload = input("  QR payload: ")
        try:
            workflow.select_by_qr(payload)
        except WorkflowError as e:
            print(f"  {e}")
        return

    if answer not in ("y", "yes", "n", "no"):
        print("  Please answer y or n.")
        return

    is_safe = answer.startswith("y")
    remarks = None if is_safe else input("  Remarks: ")
    workflow.submit(step.id, is_safe, photo, remarks=remarks)


def main():
    parser = argparse.ArgumentParser(description='Run a forklift inspection from the terminal')
    parser.add_argument('--unit', required=True, help='Forklift unit code, e.g. FL001')
    parser.add_argument('--photo', required=True, type=Path, help='Photo attached to every item')
    parser.add_argument('--username', help='Operator username (online mode)')
    parser.add_argument('--offline', action='store_true', help='Use the local cache and queue the report')
    args = parser.parse_args()

    settings = ClientSettings()
    if args.offline:
        settings.DATA_SOURCE = DataSource.OFFLINE

    if not args.photo.is_file():
        parser.error(f'Photo not found: {args.photo}')
    photo = photo_to_data_uri(args.photo)

    repo = open_data_source(settings)
    try:
        if isinstance(repo, OnlineRepository):
            username = args.username or input("Username: ")
            repo.client.login(username, getpass.getpass("Password: "))
            synced = repo.sync_pending()
            if synced:
                print(f"Uploaded {synced} report(s) queued while offline.")
            rejected = repo.rejected_reports()
            if rejected:
                print(f"{len(rejected)} queued report(s) were rejected by the server; see the local cache.")

        unit = repo.find_mhe_unit(args.unit)
        if unit is None:
            print(f"Unknown forklift unit {args.unit}.")
            return 1

        workflow = InspectionWorkflow(repo.list_checklist_items())
        print(f"Inspecting {unit['unit_code']} ({unit['name']}): {workflow.total_count} items")

        while not workflow.is_complete:
            ask_item(workflow, photo)

        verdict = repo.analyze_safety(workflow.to_analysis_request())
        print("\nSAFE" if verdict["is_safe"] else "\nUNSAFE - do not operate this unit")
        print(verdict["reason"])

        result = repo.submit_report(workflow.to_report_payload(unit_code=unit["unit_code"]))
        if result.get("queued"):
            print(f"Report queued offline ({result['pending']} pending).")
        else:
            print(f"Report {result['id']} saved with status {result['status']}.")
            if result.get("downtime_log_id"):
                print("Downtime has been logged for this unit.")
        return 0

    except (ClientError, WorkflowError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
