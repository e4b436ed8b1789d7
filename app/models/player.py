from sqlalchemy import Column, String, Integer, BigInteger, Boolean
from app.extension.shard import ShardModel


class Player(ShardModel):
    __tablename__ = 'player'
    id = Column(String(255), primary_key=True)
    tenant_id = Column(Integer, nullable=False)
    display_name = Column(String(255), nullable=False)
    is_disqualified = Column(Boolean, nullable=False, default=False)  # one-way
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "display_name": self.display_name,
            "is_disqualified": bool(self.is_disqualified),
        }
