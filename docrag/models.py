from sqlalchemy import BigInteger, Column, Text
from sqlalchemy.orm import declarative_base
from pgvector.sqlalchemy import Vector

from .config import get_settings

Base = declarative_base()

EMBED_DIM = get_settings().embed_dim


class Chunk(Base):
    """One retrievable unit of a document; `name` is the owning file name."""
    __tablename__ = "document"
    id = Column(BigInteger, primary_key=True, autoincrement=True)
    embedding = Column(Vector(EMBED_DIM), nullable=False)
    text = Column(Text, nullable=False)
    name = Column(Text, nullable=False, index=True)
    embedding_name = Column(Vector(EMBED_DIM), nullable=True)
