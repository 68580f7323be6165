import sys

from pyapp import User


def main(argv=None):
    print(User(sys.argv[1]).name)
