"""
OOF Manager - Main Entry Point

Backs up or deploys mailbox automatic-reply (Out of Office) settings for every
mailbox listed in a CSV file, through Microsoft Graph.

Usage:
    python -m oof_manager.main --action Backup
    python -m oof_manager.main --action SetOOF --input users.csv --internal-message internal.html
    python -m oof_manager.main --action Restore --backup-report OOF_Backup_20250601_090000.csv
"""
from __future__ import annotations

import argparse
import datetime as dt
import logging
import sys

import yaml

from . import batch
from .collector import AnswersPrompter, ConsolePrompter, collect_auto_reply_config
from .config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from .errors import ConfigError, InputNotFound, OOFError, RunCancelled
from .input_loader import load_identities
from .report import (
    BACKUP_PREFIX,
    DEPLOY_PREFIX,
    RESTORE_PREFIX,
    read_backup_report,
    render_summary,
    write_report,
)
from .session import connect, session_scope

logger = logging.getLogger(__name__)

ACTIONS = ("Backup", "SetOOF", "Restore")


def setup_logging(level=logging.INFO, log_file=None):
    """Configure logging settings."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("msal").setLevel(logging.WARNING)
    logger.debug(f"Logging setup complete. Level set to: {logging.getLevelName(level)}")


def parse_args(argv=None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(description="Bulk backup / deployment of mailbox automatic replies")
    parser.add_argument("--action", required=True, choices=ACTIONS,
                        help="Backup current settings, SetOOF to deploy new ones, Restore to re-apply a backup")
    parser.add_argument("--input", type=str, default=None,
                        help="CSV with a UserPrincipalName or Email column (default: users.csv)")
    parser.add_argument("--output-dir", type=str, default=None,
                        help="Folder for the report (default: current directory)")
    parser.add_argument("--internal-message", type=str, default=None,
                        help="Internal reply template file (default: InternalMessage.html)")
    parser.add_argument("--external-message", type=str, default=None,
                        help="External reply template file (default: ExternalMessage.html)")
    parser.add_argument("--backup-report", type=str, default=None,
                        help="Backup CSV to re-apply (Restore only)")
    parser.add_argument("--config", type=str, default=DEFAULT_CONFIG_PATH,
                        help="Path to YAML configuration file")
    parser.add_argument("--answers", type=str, default=None,
                        help="YAML file with SetOOF answers for unattended runs")
    parser.add_argument("--yes", action="store_true",
                        help="Answer Y to every confirmation")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug logging")
    args = parser.parse_args(argv)
    if args.action == "Restore" and not args.backup_report:
        parser.error("--backup-report is required for --action Restore")
    return args


def apply_overrides(cfg: AppConfig, args) -> AppConfig:
    """CLI flags win over the config file."""
    if args.input:
        cfg.paths.input = args.input
    if args.output_dir:
        cfg.paths.output_dir = args.output_dir
    if args.internal_message:
        cfg.paths.internal_message = args.internal_message
    if args.external_message:
        cfg.paths.external_message = args.external_message
    return cfg


def build_prompter(args):
    if not args.answers:
        return ConsolePrompter(assume_yes=args.yes)
    try:
        with open(args.answers, "r", encoding="utf-8") as f:
            answers = yaml.safe_load(f) or {}
    except OSError as e:
        raise InputNotFound(f"Answers file could not be read: {args.answers} ({e})")
    except (UnicodeDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Answers file is not valid YAML: {args.answers} ({e})")
    if not isinstance(answers, dict):
        raise ConfigError(f"Answers file {args.answers} must contain a mapping of answer keys")
    return AnswersPrompter(answers, assume_yes=args.yes)


def run_backup(cfg: AppConfig, started_at, connector=connect):
    identities = load_identities(cfg.paths.input, delimiter=cfg.input.delimiter)
    with session_scope(cfg.graph, connector) as client:
        output = batch.backup(client, identities)
        csv_path = write_report(output, cfg.paths.output_dir, BACKUP_PREFIX, started_at)
    return output, csv_path


def run_deploy(cfg: AppConfig, started_at, prompter, connector=connect):
    identities = load_identities(cfg.paths.input, delimiter=cfg.input.delimiter)
    with session_scope(cfg.graph, connector) as client:
        config = collect_auto_reply_config(
            prompter,
            internal_path=cfg.paths.internal_message,
            external_path=cfg.paths.external_message,
            internal_fallback=cfg.paths.internal_fallback,
            external_fallback=cfg.paths.external_fallback,
            mailbox_count=len(identities),
        )
        output = batch.deploy(client, identities, config)
        csv_path = write_report(output, cfg.paths.output_dir, DEPLOY_PREFIX, started_at)
    return output, csv_path


def run_restore(cfg: AppConfig, started_at, backup_report, prompter, connector=connect):
    records = read_backup_report(backup_report)
    with session_scope(cfg.graph, connector) as client:
        usable = sum(1 for r in records if r.ok)
        if not prompter.confirm(f"Restore auto-reply settings for {usable} mailbox(es) from {backup_report}?"):
            raise RunCancelled("Restore cancelled by operator. No changes were made.")
        output = batch.restore(client, records)
        csv_path = write_report(output, cfg.paths.output_dir, RESTORE_PREFIX, started_at)
    return output, csv_path


def main(argv=None, connector=connect):
    """Main entry point"""
    args = parse_args(argv)
    try:
        cfg = apply_overrides(load_config(args.config), args)
    except ConfigError as e:
        # Logging is configured from this file, so only the console is available
        print(f"Error: {e}")
        return 1

    log_level = logging.DEBUG if args.debug else getattr(logging, str(cfg.logging.level).upper(), logging.INFO)
    setup_logging(level=log_level, log_file=cfg.logging.file)

    started_at = dt.datetime.now()
    logger.info(f"Starting {args.action} run")

    try:
        if args.action == "Backup":
            output, csv_path = run_backup(cfg, started_at, connector)
        elif args.action == "SetOOF":
            output, csv_path = run_deploy(cfg, started_at, build_prompter(args), connector)
        else:
            output, csv_path = run_restore(cfg, started_at, args.backup_report, build_prompter(args), connector)
    except RunCancelled as e:
        logger.info(str(e))
        print(str(e))
        return 0
    except OOFError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        print(f"Error: {e}")
        return 1

    print(render_summary(args.action, output, csv_path))
    logger.info("Execution completed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
