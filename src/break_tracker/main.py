"""
Main Entry Point for Break Tracking System

Console front end for the daily break summary, exports and JSON
backup/restore, with application logging.
"""

import argparse
import sys
import logging
from pathlib import Path
from datetime import date, datetime

from break_tracker.data_manager import DataManager, DataManagerError
from break_tracker.reporting import ExportManager
from break_tracker.sharing import EMAIL_TEMPLATES, Permission, ShareManager


def setup_logging(log_dir: Path = Path("logs")):
    """Setup application logging"""
    log_dir.mkdir(exist_ok=True)

    log_file = log_dir / f"break_tracker_{datetime.now().strftime('%Y%m%d')}.log"

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )

    return logging.getLogger(__name__)


def handle_exception(exc_type, exc_value, exc_traceback):
    """Global exception handler"""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logging.getLogger(__name__).error(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback)
    )


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="break-tracker", description="Employee break tracking")
    parser.add_argument("--data-file", default="data/break_data.json", help="JSON data file")
    parser.add_argument("--date", type=parse_date, default=None, help="Day to report on (YYYY-MM-DD)")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("summary", help="Show the compliance summary for the day")

    export_parser = subparsers.add_parser("export", help="Export the day's timesheet")
    export_parser.add_argument("format", choices=["csv", "excel", "pdf"])
    export_parser.add_argument("output", nargs="?", default=None)

    backup_parser = subparsers.add_parser("backup", help="Write a JSON backup")
    backup_parser.add_argument("output", nargs="?", default=None)

    restore_parser = subparsers.add_parser("restore", help="Restore from a JSON backup")
    restore_parser.add_argument("input")

    share_parser = subparsers.add_parser("share", help="Create a share link and print the invitation email")
    share_parser.add_argument("email")
    share_parser.add_argument("--name", default="")
    share_parser.add_argument("--permission", choices=[p.value for p in Permission], default=Permission.EDIT.value)
    share_parser.add_argument("--days", type=int, default=30, help="Days until the link expires")
    share_parser.add_argument("--template", choices=sorted(EMAIL_TEMPLATES), default="default")
    share_parser.add_argument("--message", default="", help="Custom message appended to the email")

    revoke_parser = subparsers.add_parser("revoke", help="Revoke a share link")
    revoke_parser.add_argument("share_id")

    subparsers.add_parser("shares", help="List share links with their status")

    return parser


class BreakTrackerApp:
    """Main application class"""

    def __init__(self, data_file: str):
        self.logger = logging.getLogger(__name__)
        self.data_file = data_file
        self.data_manager = None
        self.export_manager = None
        self.share_manager = None

    def initialize(self) -> bool:
        """Initialize application components"""
        try:
            self.logger.info("Initializing Break Tracker")
            self.data_manager = DataManager(self.data_file)
            self.logger.info(f"Data manager initialized with {self.data_manager.data_file}")
            self.export_manager = ExportManager(self.data_manager)
            self.share_manager = ShareManager(self.data_manager)
            return True

        except DataManagerError as e:
            self.logger.error(f"Failed to initialize application: {e}", exc_info=True)
            return False

    def run(self, args: argparse.Namespace) -> bool:
        if not self.initialize():
            return False

        target_date = args.date or date.today()

        try:
            if args.command == "summary":
                print(self.export_manager.report_generator.create_dashboard_summary(target_date))
                return True

            if args.command == "export":
                output = args.output or self.export_manager.get_default_filename(target_date, args.format)
                success = self.export_manager.export_day(target_date, args.format, output)
                if success:
                    self.logger.info(f"Exported {args.format} to {output}")
                return success

            if args.command == "backup":
                output = args.output or f"employee-break-backup-{date.today().isoformat()}.json"
                success = self.data_manager.export_backup(output)
                if success:
                    self.logger.info(f"Backup written to {output}")
                return success

            if args.command == "restore":
                backup = self.data_manager.import_backup(args.input)
                self.data_manager.save_data()
                self.logger.info(
                    f"Successfully restored {len(backup.employees)} employees "
                    f"and {len(backup.break_entries)} break entries."
                )
                return True

            if args.command == "share":
                try:
                    share = self.share_manager.share(args.email, args.name, Permission(args.permission),
                                                     args.days)
                except ValueError as e:
                    self.logger.error(f"share failed: {e}")
                    return False
                self.data_manager.save_data()
                email = self.share_manager.render_email(share, args.template, args.message)
                print(f"To: {email['to']}\nSubject: {email['subject']}\n\n{email['body']}")
                return True

            if args.command == "revoke":
                if not self.share_manager.revoke(args.share_id):
                    self.logger.error(f"No share link with id {args.share_id}")
                    return False
                self.data_manager.save_data()
                return True

            if args.command == "shares":
                for share in self.share_manager.get_shares():
                    status = self.share_manager.get_status(share)
                    print(f"{share.id}\t{share.recipient_email}\t{share.permissions.value}\t"
                          f"{status}\t{share.link}")
                return True

        except DataManagerError as e:
            self.logger.error(f"{args.command} failed: {e}")
            return False

        return False


def main(argv=None):
    """Main entry point"""
    sys.excepthook = handle_exception

    args = build_parser().parse_args(argv)
    logger = setup_logging()
    logger.info("Starting Break Tracker")

    app = BreakTrackerApp(args.data_file)
    success = app.run(args)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
