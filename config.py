# config.py
import os


class Config:
    SQLALCHEMY_DATABASE_URI = os.environ.get('LEDGER_DATABASE_URI', 'sqlite:///expenses.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get('LEDGER_LOG_LEVEL', 'INFO')
    TESTING = False


class TestConfig(Config):
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    LOG_LEVEL = 'DEBUG'
    TESTING = True
