"""
Centralized constants for Checkpoint Runner.
"""

# Backups older than this are never resumed from (seconds)
DEFAULT_BACKUP_EXPIRATION = 60 * 60

# Default checkpoint location, relative to the pipeline directory
DEFAULT_BACKUP_FILENAME = ".ckr/backup.json"

# Prefix of environment variables exporting earlier task outputs to commands
OUTPUT_ENV_PREFIX = "CKR_OUTPUT_"

# Config file names searched in the current directory
LOCAL_CONFIG_FILES = ("ckr.yaml", "ckr.yml")
