"""
Command line entry point for the expiry reconciler.
Intended to be triggered by cron or Cloud Scheduler; each invocation
reconciles one batch and exits.
"""

import sys
import logging
import argparse
from typing import List, Optional

from pydantic import ValidationError

from expiry_reconciler.core.config import ReconcileConfig, RedisSettings, Settings, get_settings
from expiry_reconciler.core.exceptions import ConfigurationError, StoreError
from expiry_reconciler.schemas.reconcile import RunResult, RunStatus
from expiry_reconciler.services.firebase_service import FirebaseService
from expiry_reconciler.services.reconcile_service import run_reconcile
from expiry_reconciler.services.redis_key_source import RedisKeySource
from expiry_reconciler.utils.firestore_utils import parse_duration

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION = 2

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def parse_arguments(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> argparse.Namespace:
    """Parse command line arguments, defaulting each flag from the environment."""
    settings = settings or get_settings()
    parser = argparse.ArgumentParser(
        description='Extend the expiry of Firestore documents listed in a Redis set'
    )

    parser.add_argument('--project-id', default=settings.project_id,
                        help='GCP project ID (env: PROJECT_ID)')
    parser.add_argument('--service-account', default=settings.FIREBASE_SERVICE_ACCOUNT,
                        help='Path to a Firebase service account file (env: FIREBASE_SERVICE_ACCOUNT)')
    parser.add_argument('--firestore-collection', default=settings.FIRESTORE_COLLECTION,
                        help='Firestore collection (env: FIRESTORE_COLLECTION)')
    parser.add_argument('--firestore-expire-key', default=settings.FIRESTORE_EXPIRE_KEY,
                        help='Firestore expire field (env: FIRESTORE_EXPIRE_KEY)')
    parser.add_argument('--redis-addr', default=settings.REDIS_ADDR,
                        help='Redis address host:port (env: REDIS_ADDR)')
    parser.add_argument('--redis-user', default=settings.REDIS_USER,
                        help='Redis user (env: REDIS_USER)')
    parser.add_argument('--redis-password', default=settings.REDIS_PASSWORD,
                        help='Redis password (env: REDIS_PASSWORD)')
    parser.add_argument('--redis-db', type=int, default=settings.REDIS_DB,
                        help='Redis db (env: REDIS_DB, default: 0)')
    parser.add_argument('--redis-set-key', default=settings.REDIS_SET_KEY,
                        help='Redis set holding pending document ids (env: REDIS_SET_KEY)')
    parser.add_argument('--expire-increment', default=settings.EXPIRE_INCREMENT,
                        help='Duration added to the expiry, e.g. 720h (env: EXPIRE_INCREMENT)')
    parser.add_argument('--log-level', default=settings.LOG_LEVEL,
                        help='Logging level (env: LOG_LEVEL, default: INFO)')

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ReconcileConfig:
    """
    Build the run configuration from parsed arguments.

    Raises:
        ConfigurationError: If a required value is missing or invalid
    """
    missing = [
        flag for flag, value in (
            ('--redis-set-key', args.redis_set_key),
            ('--firestore-collection', args.firestore_collection),
            ('--firestore-expire-key', args.firestore_expire_key),
            ('--expire-increment', args.expire_increment),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(f"missing required configuration: {', '.join(missing)}")

    return ReconcileConfig.create(
        key_set_name=args.redis_set_key,
        collection_name=args.firestore_collection,
        expire_field_name=args.firestore_expire_key,
        increment=parse_duration(args.expire_increment),
    )


def exit_code(result: RunResult) -> int:
    if result.status == RunStatus.success:
        return EXIT_OK
    if result.status == RunStatus.configuration_error:
        return EXIT_CONFIGURATION
    return EXIT_FAILURE


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    try:
        settings = get_settings()
    except ValidationError as e:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        logger.error(f"Configuration error: invalid environment: {e}")
        return EXIT_CONFIGURATION

    args = parse_arguments(argv, settings)

    level = logging.getLevelName(str(args.log_level).upper())
    if not isinstance(level, int):
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        logger.error(f"Configuration error: unknown log level {args.log_level!r}")
        return EXIT_CONFIGURATION
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)

    try:
        config = build_config(args)
        redis_settings = RedisSettings.from_addr(
            args.redis_addr,
            username=args.redis_user,
            password=args.redis_password,
            db=args.redis_db,
        )
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        return EXIT_CONFIGURATION

    firebase_service = None
    key_source = None
    try:
        firebase_service = FirebaseService(
            project_id=args.project_id,
            service_account_path=args.service_account,
        )
        key_source = RedisKeySource(redis_settings)

        result = run_reconcile(key_source, firebase_service, config)
        if result.ok:
            logger.info(f"Reconcile finished. Stats: {result.summary()}")
        else:
            logger.error(f"Reconcile failed ({result.error_code}): {result.error}")
        return exit_code(result)

    except StoreError as e:
        logger.error(f"Error setting up store clients: {e.message}")
        return EXIT_FAILURE

    finally:
        if key_source is not None:
            key_source.close()
        if firebase_service is not None:
            firebase_service.close()


if __name__ == "__main__":
    sys.exit(main())
