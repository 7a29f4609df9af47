from sqlalchemy import (
    Column, Integer, String, DateTime, Float, ForeignKey, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

class PlayerProfile(Base):
    __tablename__ = 'players'
    
    # Anonymous client-generated identity; no authentication behind it
    uid = Column(String(64), primary_key=True)
    display_name = Column(String(30), nullable=True)
    
    # Verse exploration stats synced from the client
    verses_explored = Column(Integer, default=0)
    quran_percent = Column(Float, default=0.0)
    
    # Metadata
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
    
    def __repr__(self):
        return f"<PlayerProfile(uid='{self.uid[:8]}', display_name='{self.display_name}')>"

class DailyScore(Base):
    __tablename__ = 'daily_scores'
    
    id = Column(Integer, primary_key=True)
    uid = Column(String(64), ForeignKey('players.uid'), nullable=False, index=True)
    puzzle_date = Column(String(10), nullable=False)  # Canonical puzzle date, YYYY-MM-DD
    
    # Crescents per game mode
    connections = Column(Integer, default=0, nullable=False)
    harf = Column(Integer, default=0, nullable=False)
    deduction = Column(Integer, default=0, nullable=False)
    scramble = Column(Integer, default=0, nullable=False)
    juz = Column(Integer, default=0, nullable=False)
    total = Column(Integer, default=0, nullable=False)  # Always the sum of the five modes
    
    streak = Column(Integer, default=0)  # Client-reported best streak at write time
    submitted_at = Column(DateTime, default=func.now(), onupdate=func.now())
    
    __table_args__ = (
        UniqueConstraint('uid', 'puzzle_date', name='uq_daily_score_uid_date'),
        CheckConstraint('total >= 0', name='ck_daily_score_total_non_negative'),
    )
    
    def __repr__(self):
        return f"<DailyScore(uid='{self.uid[:8]}', date='{self.puzzle_date}', total={self.total})>"

class Group(Base):
    __tablename__ = 'groups'
    
    code = Column(String(6), primary_key=True)
    name = Column(String(40), nullable=False)
    created_by = Column(String(64), nullable=False)
    member_count = Column(Integer, default=0, nullable=False)
    
    # Metadata
    created_at = Column(DateTime, default=func.now())
    
    def __repr__(self):
        return f"<Group(code='{self.code}', name='{self.name}', members={self.member_count})>"

class GroupMember(Base):
    __tablename__ = 'group_members'
    
    id = Column(Integer, primary_key=True)
    group_code = Column(String(6), ForeignKey('groups.code'), nullable=False, index=True)
    uid = Column(String(64), nullable=False, index=True)
    joined_at = Column(DateTime, default=func.now())
    
    __table_args__ = (UniqueConstraint('group_code', 'uid', name='uq_group_member'),)
    
    def __repr__(self):
        return f"<GroupMember(group='{self.group_code}', uid='{self.uid[:8]}')>"
