from fastapi import HTTPException
from storefront.api.schemas import MutationResponse
from storefront.db.session import SessionLocal
from storefront.domain.errors import CapacityError, ConflictError, NotFoundError, StorefrontError

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def http_error(exc: StorefrontError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, (CapacityError, ConflictError)):
        return HTTPException(status_code=409, detail=exc.message)
    return HTTPException(status_code=400, detail=exc.message)

def run_mutation(operation, db, *args) -> MutationResponse:
    """Call a service operation, reporting domain failures in the response body."""
    try:
        operation(db, *args)
    except StorefrontError as exc:
        return MutationResponse(success=False, error=exc.message)
    return MutationResponse(success=True)
