#!/usr/bin/env python3
"""
Script to set environment variables for the expiry reconciler.
This script should be imported before running the reconciler.
"""

import os
import json
import logging
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

def set_environment_variables():
    """Load the .env file and derive the project ID from the service account if needed."""
    env_path = Path(os.path.dirname(os.path.abspath(__file__))) / '.env'
    if env_path.exists():
        logger.info(f"Loading environment variables from {env_path}")
        load_dotenv(dotenv_path=env_path)
    else:
        logger.warning("No .env file found")

    firebase_credentials_path = os.getenv("FIREBASE_SERVICE_ACCOUNT")

    # Extract project ID from the credentials file if not already set
    if (not os.getenv("PROJECT_ID") and not os.getenv("FIREBASE_PROJECT_ID")
            and firebase_credentials_path and os.path.exists(firebase_credentials_path)):
        try:
            with open(firebase_credentials_path, 'r') as f:
                creds_data = json.loads(f.read())
            if 'project_id' in creds_data:
                os.environ["PROJECT_ID"] = creds_data['project_id']
                logger.info(f"Extracted project ID from credentials: {creds_data['project_id']}")
        except (OSError, ValueError) as e:
            logger.warning(f"Could not extract project ID from credentials: {e}")

    # Log environment variables (excluding sensitive values)
    logger.info(f"FIREBASE_SERVICE_ACCOUNT: {os.environ.get('FIREBASE_SERVICE_ACCOUNT', 'Not set')}")
    logger.info(f"PROJECT_ID: {os.environ.get('PROJECT_ID') or os.environ.get('FIREBASE_PROJECT_ID') or 'Not set'}")
    logger.info(f"REDIS_ADDR: {os.environ.get('REDIS_ADDR', 'Not set')}")
    logger.info(f"REDIS_PASSWORD: {'Set' if os.environ.get('REDIS_PASSWORD') else 'Not set'}")
