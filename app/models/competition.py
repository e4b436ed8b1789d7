from sqlalchemy import Column, String, Integer, BigInteger
from app.extension.shard import ShardModel


class Competition(ShardModel):
    __tablename__ = 'competition'
    id = Column(String(255), primary_key=True)
    tenant_id = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    finished_at = Column(BigInteger, nullable=True)   # set once, never changed
    # Bumped by every score import; cache entries are tagged with it
    score_generation = Column(Integer, nullable=False, default=0)
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)

    @property
    def is_finished(self):
        return self.finished_at is not None

    def to_dict(self):
        return {"id": self.id, "title": self.title, "is_finished": self.is_finished}
