"""
Typed query helpers shared by every route and service.

Each helper runs inside backend_call(), which turns SQLAlchemy failures into
the application's error taxonomy and logs them with the operation name and
row identifiers only. Answer values never reach the log.
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Type
import logging

from sqlalchemy import func
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    MultipleResultsFound,
    NoResultFound,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session

from formbuilder.errors import BackendError, BackendUnavailable, ConflictError, NotFoundError

logger = logging.getLogger(__name__)


@contextmanager
def backend_call(db: Session, operation: str, **identifiers):
    try:
        yield
    except IntegrityError:
        db.rollback()
        logger.warning(f"Integrity error during {operation} {identifiers}")
        raise ConflictError(f"{operation} conflicts with an existing record")
    except OperationalError as e:
        db.rollback()
        logger.error(f"Backend unavailable during {operation} {identifiers}: {e.__class__.__name__}")
        raise BackendUnavailable()
    except DBAPIError as e:
        db.rollback()
        if e.connection_invalidated:
            logger.error(f"Connection lost during {operation} {identifiers}")
            raise BackendUnavailable()
        logger.error(f"Database error during {operation} {identifiers}: {e.__class__.__name__}")
        raise BackendError()
    except (NoResultFound, MultipleResultsFound):
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error during {operation} {identifiers}: {e.__class__.__name__}")
        raise BackendError()


def select_rows(db: Session, model: Type, *criteria, order_by: Iterable = ()) -> List[Any]:
    with backend_call(db, f"select {model.__tablename__}"):
        query = db.query(model).filter(*criteria)
        for clause in order_by:
            query = query.order_by(clause)
        return query.all()


def fetch_single(db: Session, model: Type, *criteria, what: Optional[str] = None):
    """Exactly one row or a loud failure"""
    what = what or model.__name__
    with backend_call(db, f"fetch {model.__tablename__}"):
        try:
            return db.query(model).filter(*criteria).one()
        except NoResultFound:
            raise NotFoundError(what)
        except MultipleResultsFound:
            logger.error(f"Expected one {model.__tablename__} row, found several")
            raise BackendError(f"Expected one {what}, found several")


def fetch_maybe_single(db: Session, model: Type, *criteria):
    with backend_call(db, f"fetch {model.__tablename__}"):
        try:
            return db.query(model).filter(*criteria).one_or_none()
        except MultipleResultsFound:
            logger.error(f"Expected at most one {model.__tablename__} row, found several")
            raise BackendError(f"Expected at most one {model.__name__}, found several")


def count_rows(db: Session, model: Type, *criteria) -> int:
    with backend_call(db, f"count {model.__tablename__}"):
        return db.query(func.count(model.id)).filter(*criteria).scalar() or 0


def insert_row(db: Session, instance, commit: bool = True):
    with backend_call(db, f"insert {instance.__tablename__}"):
        db.add(instance)
        if commit:
            db.commit()
            db.refresh(instance)
        else:
            db.flush()
        return instance


def insert_rows(db: Session, instances: List[Any], commit: bool = True) -> List[Any]:
    if not instances:
        return []
    with backend_call(db, f"insert {instances[0].__tablename__}", count=len(instances)):
        db.add_all(instances)
        if commit:
            db.commit()
            for instance in instances:
                db.refresh(instance)
        else:
            db.flush()
        return instances


def update_row(db: Session, instance, values: Dict[str, Any], commit: bool = True):
    with backend_call(db, f"update {instance.__tablename__}", id=instance.id):
        for key, value in values.items():
            setattr(instance, key, value)
        if commit:
            db.commit()
            db.refresh(instance)
        else:
            db.flush()
        return instance


def delete_row(db: Session, instance, commit: bool = True) -> None:
    with backend_call(db, f"delete {instance.__tablename__}", id=instance.id):
        db.delete(instance)
        if commit:
            db.commit()
        else:
            db.flush()


def commit(db: Session, operation: str, **identifiers) -> None:
    with backend_call(db, operation, **identifiers):
        db.commit()
