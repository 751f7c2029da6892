#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Run configuration for sarwater, read from params.yaml into a namespace.

Copy the template with ``sarwater-setup`` and edit it before running.
"""

import argparse
import os
import sys

import yaml

from sarwater.classify import THRESHOLD_DB
from sarwater.errors import ConfigError
from sarwater.region import Region
from sarwater.source import S1_COLLECTION, STAC_URL, validate_date_range, validate_instrument_mode, validate_polarization
from sarwater.utils import nproc

# Imjin River, Korea
DEFAULT_POLYGON = ('POLYGON ((126.771302 38.418591, 126.771302 38.353767, 126.866022 38.353767, '
                   '126.866022 38.418591, 126.771302 38.418591))')

DEFAULTS = {
    'polygon': DEFAULT_POLYGON,
    'date_start': '2014-01-01',
    'date_stop': '2022-02-20',
    'polarization': 'VV',
    'instrument_mode': 'IW',
    'threshold': THRESHOLD_DB,
    'radius': 100.0,
    'scale': 100.0,
    'workers': nproc,
    'stac_url': STAC_URL,
    'collection': S1_COLLECTION,
    'max_items': None,
    'data_dir': None,
    'linear': False,
}

# Keys whose blank value is kept rather than replaced by the default
BLANK_MEANS_ANY = ('instrument_mode',)


def load_yaml_to_namespace(yaml_file):
    # Load the YAML file into a dictionary
    with open(yaml_file, 'r') as yaml_in:
        yaml_dict = yaml.safe_load(yaml_in) or {}

    if not isinstance(yaml_dict, dict):
        raise ConfigError(f'{yaml_file} must contain a mapping of parameters')

    # Create a namespace from the dictionary
    namespace = argparse.Namespace(**yaml_dict)

    return namespace


def _positive(ps, key):
    try:
        value = float(getattr(ps, key))
    except (TypeError, ValueError):
        raise ConfigError(f'{key} must be a number, got {getattr(ps, key)!r}') from None
    if value <= 0:
        raise ConfigError(f'{key} must be positive, got {value}')
    return value


def validate(ps):
    """
    Check and normalise a params namespace in place.

    Raises ConfigError (or a subclass) on the first invalid value.
    """
    for key, value in DEFAULTS.items():
        if key in BLANK_MEANS_ANY:
            if not hasattr(ps, key):
                setattr(ps, key, value)
        elif getattr(ps, key, None) is None:
            setattr(ps, key, value)

    ps.region = Region.coerce(ps.polygon)
    ps.date_start, ps.date_stop = validate_date_range(ps.date_start, ps.date_stop)
    ps.polarization = validate_polarization(ps.polarization)
    ps.instrument_mode = validate_instrument_mode(ps.instrument_mode)
    try:
        ps.threshold = float(ps.threshold)
    except (TypeError, ValueError):
        raise ConfigError(f'threshold must be a number in dB, got {ps.threshold!r}') from None
    ps.radius = _positive(ps, 'radius')
    ps.scale = _positive(ps, 'scale')
    ps.workers = int(_positive(ps, 'workers'))

    # Resolve a relative data_dir against the params file location
    if ps.data_dir and not os.path.isabs(str(ps.data_dir)):
        ps.data_dir = os.path.abspath(os.path.join(getattr(ps, 'config_dir', '.'), str(ps.data_dir)))
    return ps


def getPS(directory='.'):
    # Load the params from the yaml file
    yaml_file = os.path.join(directory, 'params.yaml')

    if os.path.isfile(yaml_file):
        print('Parsing yaml file and updating ps namespace...')
        ps = load_yaml_to_namespace(yaml_file)
    else:
        print('no params.yaml file found. Run sarwater-setup to copy the template.')
        sys.exit(1)

    ps.config_dir = os.path.abspath(directory)
    return validate(ps)
