"""
Domain errors raised by services and rendered by the API layer.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse


class DomainError(Exception):
    """Recoverable business rule violation; the caller can retry with corrected input."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RateNotFoundError(DomainError):
    def __init__(self, origin: str, destination: str):
        super().__init__(f"Shipping rate not found for route {origin} -> {destination}")
        self.origin = origin
        self.destination = destination


class InvalidDiscountError(DomainError):
    pass


class ConsignorNotFoundError(DomainError):
    def __init__(self, consignor_id):
        super().__init__(f"Consignor {consignor_id} not found")
        self.consignor_id = consignor_id


class ShipmentAlreadyConfirmedError(DomainError):
    def __init__(self, line_id):
        super().__init__("Shipment already confirmed")
        self.line_id = line_id


class RecordNotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class ManifestNotFoundError(RecordNotFoundError):
    def __init__(self, manifest_info_id):
        super().__init__(f"Manifest {manifest_info_id} not found")
        self.manifest_info_id = manifest_info_id


async def domain_error_handler(_: Request, exc: DomainError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
