"""Persistence backends for deals, votes, LPs and introduction requests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime
from threading import RLock
from typing import Any, Protocol
from uuid import UUID, uuid4

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine, select

from dealflow.config import settings
from dealflow.models.deal import Deal, DealStatus, Founder
from dealflow.models.introduction import IntroductionRequest
from dealflow.models.limited_partner import LimitedPartner
from dealflow.models.records import (
    DealRecord,
    FounderRecord,
    IntroductionRequestRecord,
    LimitedPartnerRecord,
    VoteRecord,
    dehydrate,
    to_column_value,
)
from dealflow.models.vote import Vote
from dealflow.observability.metrics import metrics
from dealflow.services.pipeline.errors import PipelinePersistenceError, RecordNotFoundError

logger = logging.getLogger(__name__)

DealMutator = Callable[[Deal], tuple[Deal, Sequence[Founder] | None]]
IntroductionTransition = Callable[[IntroductionRequest | None], IntroductionRequest]


class PipelineRepository(Protocol):
    """Persistence contract for the deal evaluation pipeline."""

    def get_deal(self, deal_id: UUID) -> Deal | None:
        ...

    def list_deals(self, *, status: DealStatus | None = DealStatus.ACTIVE) -> list[Deal]:
        ...

    def insert_deal(self, deal: Deal, founders: Sequence[Founder] = ()) -> Deal:
        ...

    def modify_deal(self, deal_id: UUID, mutator: DealMutator) -> Deal:
        ...

    def list_founders(self, deal_id: UUID | None = None) -> list[Founder]:
        ...

    def get_limited_partner(self, lp_id: UUID) -> LimitedPartner | None:
        ...

    def list_limited_partners(self) -> list[LimitedPartner]:
        ...

    def insert_limited_partner(self, partner: LimitedPartner) -> LimitedPartner:
        ...

    def update_limited_partner(
        self, lp_id: UUID, fields: Mapping[str, Any], *, now: datetime
    ) -> LimitedPartner | None:
        ...

    def delete_limited_partner(self, lp_id: UUID) -> bool:
        ...

    def get_vote(self, vote_id: UUID) -> Vote | None:
        ...

    def find_vote(self, deal_id: UUID, lp_id: UUID) -> Vote | None:
        ...

    def list_votes(self, deal_id: UUID | None = None) -> list[Vote]:
        ...

    def upsert_vote(
        self, deal_id: UUID, lp_id: UUID, fields: Mapping[str, Any], *, now: datetime
    ) -> Vote:
        ...

    def ensure_vote(
        self, deal_id: UUID, lp_id: UUID, defaults: Mapping[str, Any], *, now: datetime
    ) -> Vote:
        ...

    def update_vote(self, vote_id: UUID, fields: Mapping[str, Any], *, now: datetime) -> Vote | None:
        ...

    def delete_vote(self, vote_id: UUID) -> Vote | None:
        ...

    def get_introduction(self, vote_id: UUID) -> IntroductionRequest | None:
        ...

    def list_introductions(self) -> list[IntroductionRequest]:
        ...

    def apply_introduction(
        self, vote_id: UUID, transition: IntroductionTransition
    ) -> IntroductionRequest:
        ...


def _newest_first(items: Sequence[Any]) -> list[Any]:
    return sorted(items, key=lambda entry: entry.created_at, reverse=True)


class InMemoryPipelineRepository(PipelineRepository):
    """Thread-safe repository used for API/local development."""

    backend = "memory"

    def __init__(self) -> None:
        self._deals: dict[UUID, Deal] = {}
        self._founders: dict[UUID, list[Founder]] = {}
        self._partners: dict[UUID, LimitedPartner] = {}
        self._votes: dict[UUID, Vote] = {}
        self._vote_keys: dict[tuple[UUID, UUID], UUID] = {}
        self._introductions: dict[UUID, IntroductionRequest] = {}
        self._lock = RLock()

    def get_deal(self, deal_id: UUID) -> Deal | None:
        with self._lock:
            return self._deals.get(deal_id)

    def list_deals(self, *, status: DealStatus | None = DealStatus.ACTIVE) -> list[Deal]:
        with self._lock:
            deals = [deal for deal in self._deals.values() if status is None or deal.status == status]
        return _newest_first(deals)

    def insert_deal(self, deal: Deal, founders: Sequence[Founder] = ()) -> Deal:
        with self._lock:
            self._deals[deal.id] = deal
            self._founders[deal.id] = list(founders)
        metrics.increment("pipeline.persistence.deal_inserted", tags={"repository": self.backend})
        return deal

    def modify_deal(self, deal_id: UUID, mutator: DealMutator) -> Deal:
        with self._lock:
            current = self._deals.get(deal_id)
            if current is None:
                raise RecordNotFoundError(f"Deal {deal_id} not found.", code="404_DEAL_NOT_FOUND")
            updated, founders = mutator(current)
            self._deals[deal_id] = updated
            if founders is not None:
                self._founders[deal_id] = list(founders)
        return updated

    def list_founders(self, deal_id: UUID | None = None) -> list[Founder]:
        with self._lock:
            if deal_id is not None:
                return list(self._founders.get(deal_id, []))
            return [founder for group in self._founders.values() for founder in group]

    def get_limited_partner(self, lp_id: UUID) -> LimitedPartner | None:
        with self._lock:
            return self._partners.get(lp_id)

    def list_limited_partners(self) -> list[LimitedPartner]:
        with self._lock:
            return sorted(self._partners.values(), key=lambda partner: partner.name.lower())

    def insert_limited_partner(self, partner: LimitedPartner) -> LimitedPartner:
        with self._lock:
            self._partners[partner.id] = partner
        return partner

    def update_limited_partner(
        self, lp_id: UUID, fields: Mapping[str, Any], *, now: datetime
    ) -> LimitedPartner | None:
        with self._lock:
            existing = self._partners.get(lp_id)
            if existing is None:
                return None
            partner = existing.model_copy(update={**fields, "updated_at": now})
            self._partners[lp_id] = partner
        return partner

    def delete_limited_partner(self, lp_id: UUID) -> bool:
        with self._lock:
            if lp_id not in self._partners:
                return False
            owned = [vote_id for (_, owner), vote_id in self._vote_keys.items() if owner == lp_id]
            for vote_id in owned:
                self._drop_vote(vote_id)
            del self._partners[lp_id]
        logger.info("pipeline.lp.deleted", extra={"lp_id": str(lp_id), "votes_removed": len(owned)})
        return True

    def get_vote(self, vote_id: UUID) -> Vote | None:
        with self._lock:
            return self._votes.get(vote_id)

    def find_vote(self, deal_id: UUID, lp_id: UUID) -> Vote | None:
        with self._lock:
            vote_id = self._vote_keys.get((deal_id, lp_id))
            return self._votes.get(vote_id) if vote_id else None

    def list_votes(self, deal_id: UUID | None = None) -> list[Vote]:
        with self._lock:
            votes = [
                vote for vote in self._votes.values() if deal_id is None or vote.deal_id == deal_id
            ]
        return _newest_first(votes)

    def upsert_vote(
        self, deal_id: UUID, lp_id: UUID, fields: Mapping[str, Any], *, now: datetime
    ) -> Vote:
        with self._lock:
            existing = self.find_vote(deal_id, lp_id)
            if existing is None:
                vote = Vote(deal_id=deal_id, lp_id=lp_id, created_at=now, updated_at=now, **fields)
                self._vote_keys[(deal_id, lp_id)] = vote.id
            else:
                vote = existing.model_copy(update={**fields, "updated_at": now})
            self._votes[vote.id] = vote
        metrics.increment("pipeline.persistence.vote_upserted", tags={"repository": self.backend})
        return vote

    def ensure_vote(
        self, deal_id: UUID, lp_id: UUID, defaults: Mapping[str, Any], *, now: datetime
    ) -> Vote:
        with self._lock:
            existing = self.find_vote(deal_id, lp_id)
            if existing is not None:
                return existing
            return self.upsert_vote(deal_id, lp_id, defaults, now=now)

    def update_vote(self, vote_id: UUID, fields: Mapping[str, Any], *, now: datetime) -> Vote | None:
        with self._lock:
            existing = self._votes.get(vote_id)
            if existing is None:
                return None
            vote = existing.model_copy(update={**fields, "updated_at": now})
            self._votes[vote_id] = vote
        return vote

    def delete_vote(self, vote_id: UUID) -> Vote | None:
        with self._lock:
            return self._drop_vote(vote_id)

    def get_introduction(self, vote_id: UUID) -> IntroductionRequest | None:
        with self._lock:
            return self._introductions.get(vote_id)

    def list_introductions(self) -> list[IntroductionRequest]:
        with self._lock:
            return list(self._introductions.values())

    def apply_introduction(
        self, vote_id: UUID, transition: IntroductionTransition
    ) -> IntroductionRequest:
        with self._lock:
            updated = transition(self._introductions.get(vote_id))
            self._introductions[vote_id] = updated
        return updated

    def _drop_vote(self, vote_id: UUID) -> Vote | None:
        vote = self._votes.pop(vote_id, None)
        if vote is None:
            return None
        self._vote_keys.pop((vote.deal_id, vote.lp_id), None)
        self._introductions.pop(vote_id, None)
        return vote


class SqlPipelineRepository(PipelineRepository):
    """SQLModel-backed repository for Postgres (or SQLite in local runs)."""

    def __init__(
        self,
        database_url: str,
        *,
        pool_min_size: int | None = None,
        pool_max_size: int | None = None,
        auto_create_schema: bool = False,
    ) -> None:
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlPipelineRepository.")

        parsed_url = make_url(database_url)
        sync_url, connect_args, drivername = _coerce_sync_database_url(parsed_url)
        pool_min = max(pool_min_size or settings.db_pool_min_size, 1)
        pool_max = max(pool_max_size or settings.db_pool_max_size, pool_min)
        max_overflow = max(pool_max - pool_min, 0)
        is_sqlite = drivername.startswith("sqlite")
        engine_kwargs: dict[str, Any] = {
            "echo": settings.debug,
            "connect_args": connect_args,
            "pool_pre_ping": not is_sqlite,
        }
        if not is_sqlite:
            engine_kwargs["pool_size"] = pool_min
            engine_kwargs["max_overflow"] = max_overflow

        self._engine: Engine = create_engine(sync_url, **engine_kwargs)
        if auto_create_schema:
            SQLModel.metadata.create_all(self._engine)
        self.backend = _resolve_metrics_tag(drivername)
        self._metrics_tags = {"repository": self.backend}

    def dispose(self) -> None:
        """Close the underlying SQLAlchemy engine."""
        self._engine.dispose()

    # Deals

    def get_deal(self, deal_id: UUID) -> Deal | None:
        with self._guard("get_deal", deal_id=deal_id), self._session() as session:
            record = session.get(DealRecord, deal_id)
            return record.to_deal() if record else None

    def list_deals(self, *, status: DealStatus | None = DealStatus.ACTIVE) -> list[Deal]:
        with self._guard("list_deals"), self._session() as session:
            statement = select(DealRecord).order_by(DealRecord.created_at.desc())
            if status is not None:
                statement = statement.where(DealRecord.status == status.value)
            return [record.to_deal() for record in session.exec(statement).all()]

    def insert_deal(self, deal: Deal, founders: Sequence[Founder] = ()) -> Deal:
        with self._guard("insert_deal", deal_id=deal.id), self._session() as session:
            record = DealRecord.from_deal(deal)
            session.add(record)
            session.flush()
            for founder in founders:
                session.add(FounderRecord.from_founder(founder))
            persisted = record.to_deal()
            session.commit()
        metrics.increment("pipeline.persistence.deal_inserted", tags=self._metrics_tags)
        return persisted

    def modify_deal(self, deal_id: UUID, mutator: DealMutator) -> Deal:
        with self._guard("modify_deal", deal_id=deal_id), self._session() as session:
            statement = select(DealRecord).where(DealRecord.id == deal_id).with_for_update()
            record = session.exec(statement).first()
            if record is None:
                raise RecordNotFoundError(f"Deal {deal_id} not found.", code="404_DEAL_NOT_FOUND")
            updated, founders = mutator(record.to_deal())
            for name, value in dehydrate(updated, exclude={"id", "created_at"}).items():
                setattr(record, name, value)
            if founders is not None:
                existing = session.exec(
                    select(FounderRecord).where(FounderRecord.deal_id == deal_id)
                ).all()
                for row in existing:
                    session.delete(row)
                session.flush()
                for founder in founders:
                    session.add(FounderRecord.from_founder(founder))
            session.flush()
            persisted = record.to_deal()
            session.commit()
        return persisted

    def list_founders(self, deal_id: UUID | None = None) -> list[Founder]:
        with self._guard("list_founders", deal_id=deal_id), self._session() as session:
            statement = select(FounderRecord).order_by(FounderRecord.created_at)
            if deal_id is not None:
                statement = statement.where(FounderRecord.deal_id == deal_id)
            return [record.to_founder() for record in session.exec(statement).all()]

    # Limited partners

    def get_limited_partner(self, lp_id: UUID) -> LimitedPartner | None:
        with self._guard("get_limited_partner", lp_id=lp_id), self._session() as session:
            record = session.get(LimitedPartnerRecord, lp_id)
            return record.to_limited_partner() if record else None

    def list_limited_partners(self) -> list[LimitedPartner]:
        with self._guard("list_limited_partners"), self._session() as session:
            statement = select(LimitedPartnerRecord).order_by(LimitedPartnerRecord.name)
            return [record.to_limited_partner() for record in session.exec(statement).all()]

    def insert_limited_partner(self, partner: LimitedPartner) -> LimitedPartner:
        with self._guard("insert_limited_partner", lp_id=partner.id), self._session() as session:
            record = LimitedPartnerRecord.from_limited_partner(partner)
            session.add(record)
            session.flush()
            persisted = record.to_limited_partner()
            session.commit()
        return persisted

    def update_limited_partner(
        self, lp_id: UUID, fields: Mapping[str, Any], *, now: datetime
    ) -> LimitedPartner | None:
        with self._guard("update_limited_partner", lp_id=lp_id), self._session() as session:
            statement = (
                select(LimitedPartnerRecord)
                .where(LimitedPartnerRecord.id == lp_id)
                .with_for_update()
            )
            record = session.exec(statement).first()
            if record is None:
                return None
            for name, value in fields.items():
                setattr(record, name, to_column_value(value))
            record.updated_at = now
            session.flush()
            persisted = record.to_limited_partner()
            session.commit()
        return persisted

    def delete_limited_partner(self, lp_id: UUID) -> bool:
        with self._guard("delete_limited_partner", lp_id=lp_id), self._session() as session:
            partner = session.get(LimitedPartnerRecord, lp_id)
            if partner is None:
                return False
            votes = session.exec(select(VoteRecord).where(VoteRecord.lp_id == lp_id)).all()
            vote_ids = [vote.id for vote in votes]
            if vote_ids:
                requests = session.exec(
                    select(IntroductionRequestRecord).where(
                        IntroductionRequestRecord.vote_id.in_(vote_ids)
                    )
                ).all()
                for request in requests:
                    session.delete(request)
                session.flush()
                for vote in votes:
                    session.delete(vote)
                session.flush()
            session.delete(partner)
            session.commit()
        logger.info(
            "pipeline.lp.deleted",
            extra={"lp_id": str(lp_id), "votes_removed": len(vote_ids), "backend": self.backend},
        )
        return True

    # Votes

    def get_vote(self, vote_id: UUID) -> Vote | None:
        with self._guard("get_vote", vote_id=vote_id), self._session() as session:
            record = session.get(VoteRecord, vote_id)
            return record.to_vote() if record else None

    def find_vote(self, deal_id: UUID, lp_id: UUID) -> Vote | None:
        with self._guard("find_vote", deal_id=deal_id, lp_id=lp_id), self._session() as session:
            return self._find_vote(session, deal_id, lp_id)

    def list_votes(self, deal_id: UUID | None = None) -> list[Vote]:
        with self._guard("list_votes", deal_id=deal_id), self._session() as session:
            statement = select(VoteRecord).order_by(VoteRecord.created_at.desc())
            if deal_id is not None:
                statement = statement.where(VoteRecord.deal_id == deal_id)
            return [record.to_vote() for record in session.exec(statement).all()]

    def upsert_vote(
        self, deal_id: UUID, lp_id: UUID, fields: Mapping[str, Any], *, now: datetime
    ) -> Vote:
        with self._guard("upsert_vote", deal_id=deal_id, lp_id=lp_id), self._session() as session:
            self._merge_vote(session, deal_id, lp_id, fields, now=now, overwrite=True)
            persisted = self._find_vote(session, deal_id, lp_id)
            session.commit()
        if persisted is None:  # pragma: no cover - row was just written
            raise PipelinePersistenceError("Vote upsert returned no row.", code="500_INTERNAL")
        metrics.increment("pipeline.persistence.vote_upserted", tags=self._metrics_tags)
        return persisted

    def ensure_vote(
        self, deal_id: UUID, lp_id: UUID, defaults: Mapping[str, Any], *, now: datetime
    ) -> Vote:
        with self._guard("ensure_vote", deal_id=deal_id, lp_id=lp_id), self._session() as session:
            self._merge_vote(session, deal_id, lp_id, defaults, now=now, overwrite=False)
            persisted = self._find_vote(session, deal_id, lp_id)
            session.commit()
        if persisted is None:  # pragma: no cover - row was just written
            raise PipelinePersistenceError("Vote insert returned no row.", code="500_INTERNAL")
        return persisted

    def update_vote(self, vote_id: UUID, fields: Mapping[str, Any], *, now: datetime) -> Vote | None:
        with self._guard("update_vote", vote_id=vote_id), self._session() as session:
            statement = select(VoteRecord).where(VoteRecord.id == vote_id).with_for_update()
            record = session.exec(statement).first()
            if record is None:
                return None
            for name, value in fields.items():
                setattr(record, name, to_column_value(value))
            record.updated_at = now
            session.flush()
            persisted = record.to_vote()
            session.commit()
        return persisted

    def delete_vote(self, vote_id: UUID) -> Vote | None:
        with self._guard("delete_vote", vote_id=vote_id), self._session() as session:
            record = session.get(VoteRecord, vote_id)
            if record is None:
                return None
            removed = record.to_vote()
            request = session.exec(
                select(IntroductionRequestRecord).where(IntroductionRequestRecord.vote_id == vote_id)
            ).first()
            if request is not None:
                session.delete(request)
                session.flush()
            session.delete(record)
            session.commit()
        return removed

    # Introduction requests

    def get_introduction(self, vote_id: UUID) -> IntroductionRequest | None:
        with self._guard("get_introduction", vote_id=vote_id), self._session() as session:
            record = session.exec(
                select(IntroductionRequestRecord).where(IntroductionRequestRecord.vote_id == vote_id)
            ).first()
            return record.to_request() if record else None

    def list_introductions(self) -> list[IntroductionRequest]:
        with self._guard("list_introductions"), self._session() as session:
            records = session.exec(select(IntroductionRequestRecord)).all()
            return [record.to_request() for record in records]

    def apply_introduction(
        self, vote_id: UUID, transition: IntroductionTransition
    ) -> IntroductionRequest:
        with self._guard("apply_introduction", vote_id=vote_id):
            try:
                return self._apply_introduction(vote_id, transition)
            except IntegrityError:
                # A concurrent writer inserted the row first; merge into it.
                logger.warning(
                    "pipeline.persistence.conflict",
                    extra={"vote_id": str(vote_id), "backend": self.backend},
                )
                return self._apply_introduction(vote_id, transition)

    def _apply_introduction(
        self, vote_id: UUID, transition: IntroductionTransition
    ) -> IntroductionRequest:
        with self._session() as session:
            statement = (
                select(IntroductionRequestRecord)
                .where(IntroductionRequestRecord.vote_id == vote_id)
                .with_for_update()
            )
            record = session.exec(statement).first()
            updated = transition(record.to_request() if record else None)
            if record is None:
                record = IntroductionRequestRecord.from_request(updated)
                session.add(record)
            else:
                for name, value in dehydrate(updated, exclude={"id", "vote_id", "created_at"}).items():
                    setattr(record, name, value)
            session.flush()
            persisted = record.to_request()
            session.commit()
        return persisted

    # Helpers

    def _merge_vote(
        self,
        session: Session,
        deal_id: UUID,
        lp_id: UUID,
        fields: Mapping[str, Any],
        *,
        now: datetime,
        overwrite: bool,
    ) -> None:
        """Insert a vote row, merging into the existing (deal, LP) row on conflict."""
        supplied = {name: to_column_value(value) for name, value in fields.items()}
        values = {
            "id": uuid4(),
            "deal_id": deal_id,
            "lp_id": lp_id,
            "strong_no": False,
            "created_at": now,
            "updated_at": now,
            **supplied,
        }
        insert = _dialect_insert(self._engine.dialect.name)
        if insert is None:
            self._merge_vote_transactional(session, deal_id, lp_id, values, supplied, now, overwrite)
            return
        statement = insert(VoteRecord.__table__).values(**values)
        conflict_columns = ["deal_id", "lp_id"]
        if overwrite:
            statement = statement.on_conflict_do_update(
                index_elements=conflict_columns,
                set_={name: statement.excluded[name] for name in [*supplied, "updated_at"]},
            )
        else:
            statement = statement.on_conflict_do_nothing(index_elements=conflict_columns)
        session.connection().execute(statement)

    def _merge_vote_transactional(
        self,
        session: Session,
        deal_id: UUID,
        lp_id: UUID,
        values: dict[str, Any],
        supplied: dict[str, Any],
        now: datetime,
        overwrite: bool,
    ) -> None:
        statement = (
            select(VoteRecord)
            .where(VoteRecord.deal_id == deal_id, VoteRecord.lp_id == lp_id)
            .with_for_update()
        )
        existing = session.exec(statement).first()
        if existing is None:
            session.add(VoteRecord(**values))
        elif overwrite:
            for name, value in supplied.items():
                setattr(existing, name, value)
            existing.updated_at = now
        session.flush()

    @staticmethod
    def _find_vote(session: Session, deal_id: UUID, lp_id: UUID) -> Vote | None:
        statement = select(VoteRecord).where(VoteRecord.deal_id == deal_id, VoteRecord.lp_id == lp_id)
        record = session.exec(statement).first()
        return record.to_vote() if record else None

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with Session(self._engine) as session:
            yield session

    @contextmanager
    def _guard(self, operation: str, **context: Any) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.exception(
                "pipeline.persistence.error",
                extra={
                    "operation": operation,
                    "backend": self.backend,
                    **{key: str(value) for key, value in context.items() if value is not None},
                },
            )
            metrics.increment(
                "pipeline.persistence.errors", tags={**self._metrics_tags, "operation": operation}
            )
            raise PipelinePersistenceError(
                f"Failed to {operation.replace('_', ' ')}.", code="500_INTERNAL"
            ) from exc


def _dialect_insert(dialect_name: str) -> Callable[..., Any] | None:
    if dialect_name == "postgresql":
        return postgresql.insert
    if dialect_name == "sqlite":
        return sqlite.insert
    return None


def _coerce_sync_database_url(url: URL) -> tuple[str, dict[str, Any], str]:
    """Convert async connection strings into sync SQLAlchemy URLs."""
    drivername = url.drivername
    connect_args: dict[str, Any] = {}
    if drivername.endswith("+asyncpg"):
        drivername = drivername.replace("+asyncpg", "+psycopg2")
    elif drivername.endswith("+psycopg"):
        drivername = drivername.replace("+psycopg", "+psycopg2")
    elif drivername.endswith("+aiosqlite"):
        drivername = drivername.replace("+aiosqlite", "")
    sync_url = url.set(drivername=drivername)
    # asyncpg takes ?ssl=; psycopg2 rejects it and wants sslmode.
    removed_ssl = "ssl" in sync_url.query
    sync_url = sync_url.difference_update_query(["ssl"])

    if drivername.startswith("postgresql"):
        if "sslmode" not in sync_url.query and removed_ssl:
            connect_args["sslmode"] = "require"
    if drivername.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
    return sync_url.render_as_string(hide_password=False), connect_args, drivername


def _resolve_metrics_tag(drivername: str) -> str:
    if drivername.startswith("sqlite"):
        return "sqlite"
    return "postgres"


def build_pipeline_repository(database_url: str | None = None) -> PipelineRepository:
    """Instantiate a PipelineRepository using DATABASE_URL when available."""
    resolved_url = database_url or settings.database_url
    if not resolved_url:
        logger.info("pipeline.repository.initialized", extra={"backend": "memory"})
        return InMemoryPipelineRepository()
    try:
        repository = SqlPipelineRepository(
            resolved_url,
            pool_min_size=settings.db_pool_min_size,
            pool_max_size=settings.db_pool_max_size,
            auto_create_schema=settings.db_auto_create_schema,
        )
        logger.info("pipeline.repository.initialized", extra={"backend": repository.backend})
        return repository
    except Exception:
        logger.exception("pipeline.repository.init_failed", extra={"backend": "database"})
        raise
