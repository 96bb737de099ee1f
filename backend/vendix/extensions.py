# Overview: Flask extension instance for the embedded relational backend.

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
