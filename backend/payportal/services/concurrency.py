# Overview: Service-layer helper for concurrency; atomic single-row conditional updates.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db


def compare_and_set(model, row_id: int, *, expected: dict, values: dict) -> bool:
    """
    UPDATE <model> SET <values> WHERE id = row_id AND <expected columns match>.

    One statement, so two writers racing on the same row cannot both see the
    expected state: the database applies the first and the second matches no
    row. Does not commit. Returns True when exactly one row changed.

    Example:
        compare_and_set(Transaction, 7, expected={"status": "pending"},
                        values={"status": "approved"})
    """
    conditions = [model.id == row_id]
    conditions.extend(getattr(model, column) == value for column, value in expected.items())

    stmt = (
        update(model)
        .where(*conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount == 1

