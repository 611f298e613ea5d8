"""Command-line entry point for the deadline calendar.

Examples:
    deadline-calendar templates
    deadline-calendar new federal 2026-08-15 "NSF CSSI proposal"
    deadline-calendar activate <trigger-id>
    deadline-calendar upcoming
"""

import argparse
import logging
import sys
from datetime import date
from typing import List, Optional

from .config import load_config
from .errors import DeadlineCalendarError
from .service import DeadlineService
from .timeline import describe

logger = logging.getLogger(__name__)


def _print_project(service: DeadlineService, project_id: str) -> None:
    project = service.get_project(project_id)
    print(f"{project.title}  [{project.id}]  final deadline {project.final_deadline_date.isoformat()}")
    for sub in project.sub_deadlines:
        mark = "x" if sub.is_completed else " "
        when = "(waiting on trigger)" if sub.unresolved else sub.date.isoformat()
        print(f"  [{mark}] {when:<22} {sub.title}")
    for trigger in service.triggers_for_project(project.id):
        state = f"active since {trigger.activation_date.isoformat()}" if trigger.is_active else "pending"
        print(f"  trigger {trigger.name} [{trigger.id}] {state}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="deadline-calendar", description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("templates", help="List usable templates")
    sub.add_parser("projects", help="List projects with their schedules")

    new = sub.add_parser("new", help="Create a project from a template")
    new.add_argument("template_id")
    new.add_argument("final_deadline", type=date.fromisoformat)
    new.add_argument("title")

    for name in ("activate", "deactivate"):
        p = sub.add_parser(name, help=f"{name.capitalize()} a trigger")
        p.add_argument("trigger_id")

    rename = sub.add_parser("rename-trigger", help="Rename a trigger")
    rename.add_argument("trigger_id")
    rename.add_argument("name")

    reschedule = sub.add_parser("reschedule", help="Move a project's final deadline")
    reschedule.add_argument("project_id")
    reschedule.add_argument("final_deadline", type=date.fromisoformat)

    set_date = sub.add_parser("set-date", help="Set the date of a sub-deadline")
    set_date.add_argument("project_id")
    set_date.add_argument("sub_deadline_id")
    set_date.add_argument("date", type=date.fromisoformat)

    drop = sub.add_parser("delete-template", help="Delete a user template")
    drop.add_argument("template_id")

    triggers = sub.add_parser("triggers", help="List a project's triggers in template order")
    triggers.add_argument("project_id")

    upcoming = sub.add_parser("upcoming", help="Show the next open sub-deadlines")
    upcoming.add_argument("--limit", type=int, default=None)

    export = sub.add_parser("export", help="Write a backup file")
    export.add_argument("path")
    restore = sub.add_parser("import", help="Restore from a backup file")
    restore.add_argument("path")
    return parser


def run(args: argparse.Namespace, service: DeadlineService, upcoming_limit: int) -> int:
    if args.command == "templates":
        for template in service.templates.templates():
            print(f"{template.id}: {template.name}")
            for bp in template.sub_deadline_blueprints:
                print(f"    {bp.title} - {describe(bp.offset)}")
        for rejected in service.templates.rejected:
            print(f"rejected: {rejected}")
    elif args.command == "projects":
        for project in service.projects():
            _print_project(service, project.id)
    elif args.command == "new":
        project = service.instantiate_project(args.template_id, args.final_deadline, args.title)
        _print_project(service, project.id)
    elif args.command in ("activate", "deactivate"):
        op = service.activate_trigger if args.command == "activate" else service.deactivate_trigger
        warning = op(args.trigger_id)
        if warning is not None:
            print(f"warning: {warning}")
    elif args.command == "rename-trigger":
        project = service.rename_trigger(args.trigger_id, args.name)
        _print_project(service, project.id)
    elif args.command == "reschedule":
        project = service.reschedule_project(args.project_id, args.final_deadline)
        _print_project(service, project.id)
    elif args.command == "set-date":
        project = service.update_sub_deadline(args.project_id, args.sub_deadline_id, new_date=args.date)
        _print_project(service, project.id)
    elif args.command == "delete-template":
        template = service.delete_template(args.template_id)
        print(f"deleted template {template.id}")
    elif args.command == "triggers":
        for trigger in service.triggers_for_project(args.project_id):
            print(f"{trigger.id}  {trigger.name}  {'active' if trigger.is_active else 'pending'}")
    elif args.command == "upcoming":
        for item in service.upcoming_sub_deadlines(args.limit or upcoming_limit):
            print(f"{item.date.isoformat()}  {item.title}  ({item.project_title})")
    elif args.command == "export":
        service.export_backup(args.path)
    elif args.command == "import":
        service.import_backup(args.path)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    service = DeadlineService.from_config(config)
    try:
        service.load()
        return run(args, service, config.upcoming_limit)
    except DeadlineCalendarError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
