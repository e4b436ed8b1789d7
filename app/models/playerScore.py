from sqlalchemy import Column, String, Integer, BigInteger, Index
from app.extension.shard import ShardModel


class PlayerScore(ShardModel):
    """
    One row of an uploaded score file. The rows of a (tenant, competition)
    are replaced wholesale on every import; row_num is the row's position
    in that file, and a player's current score is the one on their highest
    row_num.
    """
    __tablename__ = 'player_score'
    id = Column(String(255), primary_key=True)
    tenant_id = Column(Integer, nullable=False)
    player_id = Column(String(255), nullable=False)
    competition_id = Column(String(255), nullable=False)
    score = Column(BigInteger, nullable=False)
    row_num = Column(BigInteger, nullable=False)
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)

    __table_args__ = (
        Index('ix_player_score_competition_row', 'tenant_id', 'competition_id', 'row_num'),
        Index('ix_player_score_player', 'tenant_id', 'competition_id', 'player_id', 'row_num'),
    )
