#!/usr/bin/env python3
"""Copy the params.yaml template into the working directory."""

import os
import shutil
import sys

TEMPLATE = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'docs', 'params_template.yaml')


def main(directory='.', force=False):
    target = os.path.join(directory, 'params.yaml')
    if os.path.isfile(target) and not force:
        print(f'{target} already exists; not overwriting.')
        return 1

    print('Copying from ' + TEMPLATE)
    shutil.copy(TEMPLATE, target)

    print('\n')
    print('Copied the params.yaml template.')
    print('Next, edit the params.yaml file in this directory. Then run sarwater to build the water time series.')
    print('\n')
    return 0


def cli():
    return main(force='--force' in sys.argv[1:])


if __name__ == '__main__':
    sys.exit(cli())
