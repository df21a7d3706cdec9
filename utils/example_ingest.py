import pandas as pd


def ingest_data():
    # Sample data for trying out utils/byod.py
    data = {
        "name": ["Alice", "Bob", "Charlie"],
        "age": [28, 34, 29],
        "occupation": ["Engineer", "Doctor", "Artist"],
    }
    return pd.DataFrame(data)
