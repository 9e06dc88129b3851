"""
Pytest configuration shared by the whole tree.
The environment must be switched to testing before any app module is imported.
"""
import os

os.environ["TESTING"] = "True"
os.environ["DEBUG"] = "False"
os.environ.setdefault("JWT_SECRET", "test-secret")
