# ---------------------------------------------------------
# Per-identity quota counters
# ---------------------------------------------------------
# Key format:
#   localize:quota:{identity}
# The key expires one quota window after its first increment.
# ---------------------------------------------------------

QUOTA_PREFIX = "localize:quota:"


def quota_key(identity: str) -> str:
    return f"{QUOTA_PREFIX}{identity}"
