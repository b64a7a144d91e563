"""Global pytest configuration."""

import os

# Keep tests offline: no provider key unless a test passes settings explicitly
os.environ.setdefault("OPENAI_API_KEY", "")
