"""
Root pytest configuration.
Switches the settings to testing mode before anything imports the app,
so the engine binds to in-memory SQLite and Celery runs tasks eagerly.
"""
import os

os.environ["TESTING"] = "True"
os.environ["DEBUG"] = "False"
os.environ.setdefault("BANK_CLIENT_ID", "180000069")
os.environ.setdefault("BANK_STORE_KEY", "SKEY0069")
