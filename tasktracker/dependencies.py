from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from tasktracker.database import get_db as db_session
from tasktracker.repository import TaskRepository


def get_db(db: AsyncSession = Depends(db_session)):
    return db


def get_repository(db: AsyncSession = Depends(get_db)) -> TaskRepository:
    return TaskRepository(db)
