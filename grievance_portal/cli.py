"""
Interactive CLI for the College Grievance Portal.
Submit, track and (for admins) triage grievances with role enforcement.
"""

import json

from grievance_portal.analysis import compute_status_summary, format_grievance_table
from grievance_portal.database import init_engine, init_schema
from grievance_portal.errors import GrievancePortalError
from grievance_portal.lifecycle import log_status_change, transition
from grievance_portal.rbac import load_identity, require_role
from grievance_portal.submission import submit_grievance
from grievance_portal.taxonomy import (
    DETAIL_FIELD_HINTS,
    SUBCATEGORIES_BY_CATEGORY,
    allowed_next,
)
from grievance_portal.visibility import apply_filters, get_visible, list_visible
from grievance_portal.api.auth import verify_token

HELP = """Commands:
  list [search]          list grievances you can see
  show <id>              show one grievance
  submit                 submit a new grievance
  status <id> <status>   change status (admin only)
  stats                  dashboard counts
  help                   this text
  quit                   exit"""


def _choose(prompt, options):
    for i, opt in enumerate(options, 1):
        print(f"  {i}. {opt}")
    raw = input(prompt).strip()
    if raw.isdigit() and 1 <= int(raw) <= len(options):
        return options[int(raw) - 1]
    return raw


def prompt_submission():
    """Collect a candidate submission from stdin."""
    title = input("Title: ").strip()
    print("Category:")
    category = _choose("> ", list(SUBCATEGORIES_BY_CATEGORY))
    print("Subcategory:")
    subcategory = _choose("> ", SUBCATEGORIES_BY_CATEGORY.get(category, []))

    details = {}
    for name, choices in DETAIL_FIELD_HINTS.get((category, subcategory), {}).items():
        if choices:
            print(f"{name}:")
            details[name] = _choose("> ", list(choices))
        else:
            details[name] = input(f"{name}: ").strip()

    description = input("Description: ").strip()
    return {
        "title": title,
        "description": description,
        "category": category,
        "subcategory": subcategory,
        "details": details,
    }


def print_grievance(grievance, show_next=False):
    print(f"\n{grievance.grievance_id}  [{grievance.status}]")
    print(f"  {grievance.title}")
    print(f"  {grievance.category} / {grievance.subcategory}")
    print(f"  Submitted: {grievance.created_at:%Y-%m-%d %H:%M} UTC")
    if grievance.submitter:
        s = grievance.submitter
        print(f"  By: {s.get('full_name')} ({s.get('user_id_number')}) – {s.get('department')}")
    print(f"  Details: {json.dumps(grievance.details)}")
    print(f"\n  {grievance.description}")
    if show_next:
        print(f"\n  Next statuses: {', '.join(allowed_next(grievance.status)) or '(terminal)'}")


def main():
    print("=== College Grievance Portal ===\n")

    engine = init_engine()
    init_schema(engine)

    # ── Login ────────────────────────────────────────────────────────
    try:
        token = input("Paste session token (or 'quit'): ").strip()
    except (EOFError, KeyboardInterrupt):
        print("\nExiting.")
        return

    if not token or token.lower() in {"quit", "exit"}:
        print("Goodbye.")
        return

    payload = verify_token(token)
    if not payload:
        print("\n[ERROR] Login failed: invalid or expired token.")
        return

    try:
        identity = require_role(load_identity(engine, str(payload["sub"])))
    except (GrievancePortalError, ValueError) as e:
        print("\n[ERROR] Login failed.")
        print("Details:", e)
        return

    print(f"\n[auth] Logged in as: {identity.full_name or identity.user_id} (role={identity.role})")
    print(HELP)

    # ── REPL ─────────────────────────────────────────────────────────
    while True:
        try:
            line = input("\ngrievances> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        if not line:
            continue
        cmd, _, rest = line.partition(" ")
        cmd = cmd.lower()
        rest = rest.strip()

        if cmd in {"quit", "exit"}:
            print("Goodbye.")
            break

        try:
            if cmd == "help":
                print(HELP)

            elif cmd == "list":
                grievances = apply_filters(list_visible(engine, identity), search=rest)
                print(format_grievance_table(grievances))

            elif cmd == "show":
                print_grievance(get_visible(engine, identity, rest), show_next=identity.is_admin)

            elif cmd == "submit":
                grievance = submit_grievance(engine, identity, prompt_submission())
                print(f"\n[submit] Your grievance ID is {grievance.grievance_id}.")

            elif cmd == "status":
                key, _, new_status = rest.partition(" ")
                grievance = get_visible(engine, identity, key)
                updated = transition(engine, grievance, new_status.strip(), identity,
                                     on_change=log_status_change)
                print(f"[status] {updated.grievance_id} is now {updated.status}")

            elif cmd == "stats":
                summary = compute_status_summary(list_visible(engine, identity))
                print(f"Total: {summary['total']}")
                for status, count in summary["by_status"].items():
                    print(f"  {status}: {count}")

            else:
                print(f"Unknown command '{cmd}'. Type 'help'.")

        except (GrievancePortalError, ValueError) as e:
            print(f"\n[{type(e).__name__}] {e}")


if __name__ == "__main__":
    main()
