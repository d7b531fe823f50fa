import os
import tempfile

# 日志写到临时目录，必须在导入 apeiron_core 之前设置
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="apeiron-logs-"))
