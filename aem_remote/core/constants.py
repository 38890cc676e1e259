"""
Project constants definitions
"""

# ============================================================
# Client Types
# ============================================================

CLIENT_TYPE_SSH = "ssh"
CLIENT_TYPE_AWS_SSM = "aws-ssm"

# ============================================================
# Remote Layout
# ============================================================

ENV_SCRIPT_NAME = "env.sh"
SCRIPT_SUFFIX = ".sh"
TMP_SUFFIX = ".tmp"
LOCAL_TMP_PREFIX = "aem-remote-"

# ============================================================
# Connect Retry
# ============================================================

CONNECT_RETRY_INTERVAL = 3.0

# ============================================================
# SSH Default Values
# ============================================================

DEFAULT_SSH_PORT = 22
DEFAULT_SSH_TIMEOUT = 20

# ============================================================
# AWS SSM Default Values
# ============================================================

SSM_DOCUMENT_NAME = "AWS-RunShellScript"
DEFAULT_SSM_OUTPUT_TIMEOUT = 3600.0
DEFAULT_SSM_WAIT_MIN = 5.0
DEFAULT_SSM_WAIT_MAX = 120.0
DEFAULT_SSM_USER = "root"

# ============================================================
# Instance Default Values
# ============================================================

DEFAULT_DATA_DIR = "/mnt/aemc"
DEFAULT_WORK_DIR = "/tmp/aemc"
DEFAULT_SERVICE_NAME = "aem"
DEFAULT_CONNECT_TIMEOUT = 300.0
DEFAULT_COMPOSE_VERSION = "1.6.12"
COMPOSE_WRAPPER_URL = "https://raw.githubusercontent.com/wttech/aemc/main/pkg/project/common/aemw"
