#!/usr/bin/env python3
"""
Script to run the expiry reconciliation job.
This script can be scheduled to run periodically using cron or a similar scheduler.
"""

import os
import sys
import logging
from datetime import datetime

# Add the project root to the path so we can import the package without installing it
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Set up environment variables
from set_env import set_environment_variables
set_environment_variables()

from expiry_reconciler.main import main

if __name__ == "__main__":
    logger.info(f"Starting expiry reconcile at {datetime.now().isoformat()}")
    code = main()
    logger.info(f"Expiry reconcile finished at {datetime.now().isoformat()} with exit code {code}")
    sys.exit(code)
