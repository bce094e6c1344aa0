"""cafe-db: a console front end for a café ordering database"""

__version__ = "1.0.0"
