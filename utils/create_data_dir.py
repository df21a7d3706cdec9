import os

from queryable.config import get_settings


def get_data_folder(data_dir=None):
    data_folder = data_dir or get_settings().data_dir
    print(f"Attempting to create data folder at: {data_folder}")

    if not os.path.exists(data_folder):
        os.makedirs(data_folder)
        print(f"Data folder created at: {data_folder}")

    return data_folder


if __name__ == "__main__":
    get_data_folder()
