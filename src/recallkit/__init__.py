from recallkit.consts import VERSION

__version__ = VERSION
