"""
Utilidades de formatação para respostas, recibos e relatórios.
Inclui formatos de moeda, datas e rótulos no padrão brasileiro (pt-BR).
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime, timezone
from typing import Union, Optional
from zoneinfo import ZoneInfo

CENT = Decimal('0.01')

PAYMENT_METHOD_LABELS = {
    'dinheiro': 'Dinheiro',
    'cartao_credito': 'Cartão de Crédito',
    'cartao_debito': 'Cartão de Débito',
    'pix': 'PIX',
}

# Shorter labels used in report tables
PAYMENT_METHOD_SHORT_LABELS = {
    'dinheiro': 'Dinheiro',
    'cartao_credito': 'Cartão Crédito',
    'cartao_debito': 'Cartão Débito',
    'pix': 'PIX',
}


def to_money(value: Union[int, float, Decimal, str, None]) -> Decimal:
    """Converte para Decimal arredondado em centavos (meio para cima)."""
    if value is None or value == "":
        return Decimal('0.00')
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _group_thousands(integer_part: str) -> str:
    reversed_int = integer_part[::-1]
    groups = [reversed_int[i:i+3] for i in range(0, len(reversed_int), 3)]
    return '.'.join(groups)[::-1]


def format_number(value: Union[int, float, Decimal, str, None], decimals: int = 2) -> str:
    """
    Formata um número no padrão brasileiro:
    - Separador de milhar: ponto (.)
    - Separador decimal: vírgula (,)

    Examples:
        format_number(1500) -> "1.500,00"
        format_number(1500.5, 1) -> "1.500,5"
        format_number(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value).replace(",", ".")).quantize(
            Decimal(10) ** -decimals, rounding=ROUND_HALF_UP
        )
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    sign = "-" if num < 0 else ""
    num = abs(num)

    if decimals > 0:
        integer_part, decimal_part = f"{num:.{decimals}f}".split(".")
        return f"{sign}{_group_thousands(integer_part)},{decimal_part}"
    return f"{sign}{_group_thousands(f'{num:.0f}')}"


def format_currency(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Formata um valor monetário em reais, sempre com 2 casas decimais.

    Examples:
        format_currency(1234.5) -> "R$ 1.234,50"
        format_currency(-3) -> "-R$ 3,00"
        format_currency(None) -> "R$ 0,00"
    """
    amount = to_money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}R$ {format_number(abs(amount), 2)}"


def to_local(value: Optional[datetime], tz_name: str = 'America/Sao_Paulo') -> Optional[datetime]:
    """
    Converte um datetime para o fuso de exibição.
    Datetimes sem fuso são tratados como UTC (como o banco os devolve).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz_name))


def format_date(value: Union[date, datetime, None], tz_name: Optional[str] = None) -> str:
    """
    Formata uma data: DD/MM/AAAA

    Examples:
        format_date(date(2026, 1, 12)) -> "12/01/2026"
    """
    if value is None:
        return "-"

    if isinstance(value, datetime):
        if tz_name:
            value = to_local(value, tz_name)
        value = value.date()

    if not isinstance(value, date):
        return "-"

    return value.strftime("%d/%m/%Y")


def format_datetime(value: Optional[datetime], tz_name: Optional[str] = None) -> str:
    """
    Formata data e hora: DD/MM/AAAA HH:MM

    Examples:
        format_datetime(datetime(2026, 1, 12, 15, 30)) -> "12/01/2026 15:30"
    """
    if not isinstance(value, datetime):
        return "-"
    if tz_name:
        value = to_local(value, tz_name)
    return value.strftime("%d/%m/%Y %H:%M")


def format_time(value: Optional[datetime]) -> str:
    """Formata a hora com segundos: HH:MM:SS"""
    if not isinstance(value, datetime):
        return "-"
    return value.strftime("%H:%M:%S")


def format_payment_method(method: Optional[str], short: bool = False) -> str:
    """
    Rótulo de exibição da forma de pagamento.
    Valores desconhecidos são devolvidos sem alteração.
    """
    if method is None:
        return "-"
    labels = PAYMENT_METHOD_SHORT_LABELS if short else PAYMENT_METHOD_LABELS
    key = getattr(method, 'value', method)
    return labels.get(key, str(key))


def format_sale_number(sale_number: Optional[int]) -> str:
    """
    Número da venda com 5 dígitos.

    Examples:
        format_sale_number(42) -> "#00042"
    """
    if sale_number is None:
        return "-"
    return f"#{int(sale_number):05d}"
