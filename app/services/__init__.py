# app/services/__init__.py
"""
Service layer root package.

Each subpackage implements application use-cases on top of:

- SQLAlchemy models (app.models.*)
- Repositories (app.repositories.*)
- Pydantic schemas (app.schemas.*)
- Common service infrastructure (app.services.base.*, app.services.common.*)

Typical pattern for a service:

    class SomeService(BaseService[SomeRepository]):
        def __init__(self, db_session, settings=None, clock=None):
            super().__init__(SomeRepository(db_session), db_session, settings, clock)

        def some_use_case(self, principal, request):
            enforce(principal, request.agent_id, Action.SOME_ACTION)
            with self.transaction():
                ...
"""
