"""
Helpers genéricos de serialización.
NO contiene lógica de negocio, solo utilidades de formato.
"""
from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal("0.01")
ONE_PLACE = Decimal("0.1")


def to_decimal(value) -> Decimal:
    """Convierte números, strings o None a Decimal (None -> 0)"""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value) -> Decimal:
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_money(value) -> str:
    """Monto con 2 decimales fijos, p.ej. '300.00'"""
    return str(quantize_money(value))


def format_percent(value) -> str:
    """Porcentaje con 1 decimal fijo, p.ej. '50.0'"""
    return str(to_decimal(value).quantize(ONE_PLACE, rounding=ROUND_HALF_UP))


def serialize_decimal(value):
    """Convierte Decimal a string monetario para serialización JSON"""
    if value is None:
        return None
    return format_money(value)


def serialize_datetime(value):
    """Convierte datetime a string ISO para serialización JSON"""
    if value is None:
        return None
    return value.isoformat()
