from sqlalchemy import Column, BigInteger, Integer, String
from app.extension.extensions import db


class IdGenerator(db.Model):
    """Every insert dispenses the next id; rows themselves carry no meaning."""
    __tablename__ = 'id_generator'
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    stub = Column(String(1), nullable=False)
