import os

NPM_REGISTRY = os.getenv("AUDITCHAIN_NPM_REGISTRY", "https://registry.npmjs.org").rstrip("/")

# Registry lookups
request_timeout_sec = float(os.getenv("AUDITCHAIN_HTTP_TIMEOUT", "30"))
max_concurrency = int(os.getenv("AUDITCHAIN_CONCURRENCY", "20"))

LOG_FILE = os.getenv("AUDITCHAIN_LOG_FILE", "debug.log")
CSV_FILE = os.getenv("AUDITCHAIN_CSV_FILE", "vulnerable-report.csv")

# npm subprocess timeouts (seconds)
npm_ls_timeout = 120
npm_audit_timeout = 120
