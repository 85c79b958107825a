import logging
import os
import time
from collections import OrderedDict

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def datetime_dir(save_dir="./", dir_suffix=None):
    """Create and return ``save_dir/<Mon>/<DD_HH-MM>[_suffix]/`` for one batch run."""
    current_time = time.localtime()
    month_dir = os.path.join(save_dir, time.strftime("%h", current_time))
    run_dir = os.path.join(month_dir, time.strftime("%d_%H-%M", current_time))
    if dir_suffix:
        run_dir = run_dir + "_" + dir_suffix

    os.makedirs(run_dir, exist_ok=True)
    logger.info("Current save directory: %s", run_dir)
    return run_dir


def save_variable_dict(file_name, variable_dict):
    """One-row CSV of scalar values, one column per key."""
    new_dict = dict([(key, [val]) for key, val in variable_dict.items()])
    pd.DataFrame.from_dict(new_dict, orient="columns").to_csv(file_name)


def load_variable_dict(file_name):
    list_dict = pd.read_csv(file_name, index_col=0, header=0).to_dict(orient="list")
    return dict([(key, val[0]) for key, val in list_dict.items()])


def save_variable_list_dict(file_name, variable_list_dict, orient="columns"):
    """
    orient = 'index' is always used when variable lists are not equal in length
    """
    pd.DataFrame.from_dict(variable_list_dict, orient=orient).to_csv(file_name)


def load_variable_list_dict(file_name, throw_nan=True):
    """Read a per-game CSV back as column name -> numpy array.

    Non-numeric columns (such as the winner) are returned as object arrays
    and never NaN-filtered.
    """
    frame = pd.read_csv(file_name, index_col=0, header=0)
    columns = OrderedDict()
    for key in frame.columns:
        values = frame[key].to_numpy()
        if throw_nan and np.issubdtype(values.dtype, np.number):
            values = values[~np.isnan(values)]
        columns[key] = values
    return columns
