from sqlalchemy import Column, Integer, String, BigInteger
from app.extension.extensions import db


class Tenant(db.Model):
    __tablename__ = 'tenant'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(256), unique=True, nullable=False)          # slug, immutable
    display_name = Column(String(256), nullable=False)
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)

    def to_dict(self):
        return {"id": str(self.id), "name": self.name, "display_name": self.display_name}
