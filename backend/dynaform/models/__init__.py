"""ORM Models - SQLAlchemy records backing the SQL repositories.

Invariants:
    - All models inherit from Base (db/base.py)
    - Records hold storage shape only; domain objects are built by the adapters

Design Decisions:
    - One file per table for locality
    - All models imported here so Base.metadata knows every table before
      create_all runs
"""

from dynaform.models.form import FormRecord  # noqa: F401
from dynaform.models.form_entry import FormEntryRecord  # noqa: F401
