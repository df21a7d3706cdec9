import importlib.util
import os
import sys

import pandas as pd

from queryable.config import get_settings
from queryable.store import TABLE_NAME_RE, open_store

USAGE = "usage: python utils/byod.py <script.py> <store_id> <table>"


def verify_target(script_path, table):
    if not os.path.isfile(script_path):
        print(f"Error: ingest script {script_path} for table '{table}' not found.")
        sys.exit(1)
    if not TABLE_NAME_RE.match(table):
        print(f"Error: '{table}' is not a valid table name.")
        sys.exit(1)


def load_script(script_path):
    name = os.path.splitext(os.path.basename(script_path))[0]
    try:
        spec = importlib.util.spec_from_file_location(f"ingest_{name}", script_path)
        script = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(script)
    except Exception as e:
        print(f"Error loading ingest script {script_path}: {e}")
        sys.exit(1)

    if not callable(getattr(script, "ingest_data", None)):
        print(f"Error: {script_path} does not define an ingest_data() function.")
        sys.exit(1)
    return script


def ingest_data(script, table):
    try:
        df = script.ingest_data()
    except Exception as e:
        print(f"Error running ingest_data() for table '{table}': {e}")
        sys.exit(1)

    if not isinstance(df, pd.DataFrame):
        print(f"Error: ingest_data() must return a pandas DataFrame for table '{table}', got {type(df).__name__}.")
        sys.exit(1)
    if df.columns.empty:
        print(f"Error: ingest_data() returned no columns for table '{table}'.")
        sys.exit(1)
    return df


def save_data(df, store_id, table, data_dir=None):
    data_dir = data_dir or get_settings().data_dir

    try:
        store = open_store(data_dir, store_id)
    except ValueError as e:
        print(f"Error opening store: {e}")
        sys.exit(1)

    try:
        store.load_frame(table, df)
        print(f"Loaded {len(df)} rows into '{table}' of store '{store_id}'")
    except Exception as e:
        print(f"Error saving data to '{table}' of store '{store_id}': {e}")
        sys.exit(1)
    finally:
        store.close()


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print(USAGE)
        sys.exit(1)

    script_path, store_id, table = sys.argv[1:4]
    verify_target(script_path, table)
    script = load_script(script_path)
    df = ingest_data(script, table)
    save_data(df, store_id, table)
