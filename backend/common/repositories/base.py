from typing import Generic, TypeVar, Optional, List, Type

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import update, delete
from pydantic import BaseModel

from common.core.otel_axiom_exporter import trace_span

EntityType = TypeVar("EntityType")
DomainModelType = TypeVar("DomainModelType")
CreateModelType = TypeVar("CreateModelType", bound=BaseModel)
UpdateModelType = TypeVar("UpdateModelType", bound=BaseModel)


class BaseRepository(Generic[EntityType, DomainModelType]):
    """
    Base repository bound to an explicit session.

    The caller owns the session lifecycle (commit/rollback); repositories
    only flush. Every read goes to the database so concurrent writers are
    never masked by the session identity map.

    Example:
        repo = SubscriptionRepository(db_session)
        subscription = await repo.get(123)
    """

    def __init__(
        self,
        entity_class: Type[EntityType],
        domain_class: Type[DomainModelType],
        db_session: AsyncSession,
    ):
        self.entity_class = entity_class
        self.domain_class = domain_class
        self.db_session = db_session

    def _entity_to_domain(self, entity: EntityType) -> DomainModelType:
        """Convert database entity to domain model."""
        return self.domain_class.model_validate(entity)

    def _entities_to_domain(self, entities: List[EntityType]) -> List[DomainModelType]:
        """Convert list of database entities to domain models."""
        return [self._entity_to_domain(entity) for entity in entities]

    async def _fetch_one(self, query) -> Optional[DomainModelType]:
        result = await self.db_session.execute(
            query.execution_options(populate_existing=True)
        )
        entity = result.scalars().first()
        return self._entity_to_domain(entity) if entity else None

    async def _fetch_all(self, query) -> List[DomainModelType]:
        result = await self.db_session.execute(
            query.execution_options(populate_existing=True)
        )
        return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def get(self, id: int) -> Optional[DomainModelType]:
        return await self._fetch_one(
            select(self.entity_class).where(self.entity_class.id == id)
        )

    @trace_span
    async def create(self, create_model: CreateModelType) -> DomainModelType:
        """Create a new entity from a typed create model."""
        data = create_model.model_dump(exclude_none=True)
        db_obj = self.entity_class(**data)
        self.db_session.add(db_obj)
        await self.db_session.flush()
        await self.db_session.refresh(db_obj)
        return self._entity_to_domain(db_obj)

    @trace_span
    async def update(
        self, id: int, update_model: UpdateModelType
    ) -> Optional[DomainModelType]:
        """Update an entity with a typed update model.

        Only fields explicitly set on the model are written, so a field set
        to None clears the column while an omitted field is left alone.
        """
        data = update_model.model_dump(exclude_unset=True)
        if not data:
            return await self.get(id)

        await self.db_session.execute(
            update(self.entity_class).where(self.entity_class.id == id).values(data)
        )
        await self.db_session.flush()
        return await self.get(id)

    @trace_span
    async def delete(self, id: int) -> bool:
        result = await self.db_session.execute(
            delete(self.entity_class).where(self.entity_class.id == id)
        )
        await self.db_session.flush()
        return result.rowcount > 0
