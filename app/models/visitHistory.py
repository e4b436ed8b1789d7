from sqlalchemy import Column, BigInteger, Integer, String, Index
from app.extension.extensions import db


class VisitHistory(db.Model):
    """Append-only: one row per ranking view by a player."""
    __tablename__ = 'visit_history'
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    player_id = Column(String(255), nullable=False)
    tenant_id = Column(Integer, nullable=False)
    competition_id = Column(String(255), nullable=False)
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)

    __table_args__ = (
        Index('ix_visit_history_tenant_competition', 'tenant_id', 'competition_id', 'player_id', 'created_at'),
    )
