"""
Unit tests for pt-BR formatters.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from pdv.utils.formatters import (
    to_money, format_number, format_currency, format_date, format_datetime, format_time,
    format_payment_method, format_sale_number, to_local,
)


class TestMoney:

    def test_to_money_rounds_half_up(self):
        assert to_money('2.345') == Decimal('2.35')
        assert to_money(Decimal('2.344')) == Decimal('2.34')

    def test_to_money_empty_is_zero(self):
        assert to_money(None) == Decimal('0.00')
        assert to_money('') == Decimal('0.00')

    def test_format_number_uses_brazilian_separators(self):
        assert format_number(1500) == '1.500,00'
        assert format_number(1234567.891, 1) == '1.234.567,9'
        assert format_number(None) == '-'

    def test_format_currency(self):
        assert format_currency(1234.5) == 'R$ 1.234,50'
        assert format_currency(Decimal('45')) == 'R$ 45,00'
        assert format_currency(-3) == '-R$ 3,00'
        assert format_currency(None) == 'R$ 0,00'


class TestDates:

    def test_format_date(self):
        assert format_date(date(2026, 1, 12)) == '12/01/2026'
        assert format_date(None) == '-'

    def test_format_date_converts_to_local_timezone(self):
        # 01:30 UTC is still the previous day in São Paulo (UTC-3)
        moment = datetime(2026, 3, 10, 1, 30, tzinfo=timezone.utc)
        assert format_date(moment, 'America/Sao_Paulo') == '09/03/2026'

    def test_naive_datetimes_are_treated_as_utc(self):
        local = to_local(datetime(2026, 3, 10, 15, 0), 'America/Sao_Paulo')
        assert local.hour == 12

    def test_format_datetime_and_time(self):
        moment = datetime(2026, 1, 12, 15, 30, 5)
        assert format_datetime(moment) == '12/01/2026 15:30'
        assert format_time(moment) == '15:30:05'


class TestLabels:

    def test_payment_method_labels(self):
        assert format_payment_method('cartao_credito') == 'Cartão de Crédito'
        assert format_payment_method('cartao_credito', short=True) == 'Cartão Crédito'
        assert format_payment_method('pix') == 'PIX'

    def test_unknown_payment_method_is_returned_unchanged(self):
        assert format_payment_method('boleto') == 'boleto'

    def test_sale_number_is_zero_padded(self):
        assert format_sale_number(42) == '#00042'
        assert format_sale_number(123456) == '#123456'
