#!/usr/bin/env python3
"""Cron entry point: runs one backup unless another command is given"""
import sys

from dumpkeeper.cli import main

if __name__ == '__main__':
    sys.exit(main(sys.argv[1:]))
