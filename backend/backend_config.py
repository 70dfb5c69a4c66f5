"""
Configuration module for the Segmentation Backend API.
Loads environment variables and defines constants.
"""

import os
import re
from pathlib import Path

from dotenv import load_dotenv

# Load environment from the repository root .env on import
load_dotenv(Path(__file__).parent.parent / '.env')

# Supabase configuration
SUPABASE_URL = os.environ.get('SUPABASE_URL', '').strip()
SUPABASE_SERVICE_ROLE_KEY = os.environ.get('SUPABASE_SERVICE_ROLE_KEY', '').strip()

# Amplitude configuration
AMPLITUDE_API_KEY = os.environ.get('AMPLITUDE_API_KEY', '').strip()

# Workflow trigger worker
WORKFLOW_TRIGGER_INTERVAL = int(os.environ.get('WORKFLOW_TRIGGER_INTERVAL', '60'))

# Logging
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').strip().upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# UUID validation pattern
UUID_PATTERN = re.compile(r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$', re.I)


def is_valid_uuid(value: str) -> bool:
    """Check if a string is a valid UUID format."""
    return bool(value) and bool(UUID_PATTERN.match(value))
