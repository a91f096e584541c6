"""
Unit tests for report aggregation and CSV/PDF exports.
"""

import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import PageBreak, Paragraph, Table

from pdv.services.report_service import (
    build_report, build_dashboard, report_to_json, export_csv, export_report_pdf, export_sales_pdf,
    truncate_name, parse_period_days, CSV_HEADER, TOP_PRODUCTS_LIMIT,
    _PageCursor, _section, _add_table, PAGE_BREAK_Y, ROW_HEIGHT, SECTION_TITLE_HEIGHT,
)


def make_item(name, quantity, total_price, product_id=1):
    return SimpleNamespace(
        product_id=product_id, product=SimpleNamespace(name=name),
        quantity=quantity, total_price=Decimal(total_price),
    )


def make_sale(sale_id, created_at, total, profit, method='dinheiro', items=()):
    return SimpleNamespace(
        id=sale_id, created_at=created_at, total_amount=Decimal(total), profit=Decimal(profit),
        payment_method=method, items=list(items),
    )


# Noon UTC keeps the local (São Paulo) date equal to the UTC date
def noon(day):
    return datetime(2026, 3, day, 15, 0, tzinfo=timezone.utc)


class TestBuildReport:

    def test_summary_totals_and_average_ticket(self):
        sales = [
            make_sale(1, noon(1), '30.00', '10.00'),
            make_sale(2, noon(1), '50.00', '20.00'),
            make_sale(3, noon(2), '40.00', '15.00'),
        ]
        summary = build_report(sales)['summary']
        assert summary['total_sales'] == Decimal('120.00')
        assert summary['total_profit'] == Decimal('45.00')
        assert summary['total_orders'] == 3
        assert summary['avg_ticket'] == Decimal('40.00')

    def test_no_sales_gives_zero_average(self):
        report = build_report([])
        assert report['summary']['avg_ticket'] == Decimal('0.00')
        assert report['summary']['total_orders'] == 0
        assert report['sales_by_day'] == []
        assert report['top_products'] == []

    def test_sales_by_day_most_recent_first(self):
        sales = [
            make_sale(1, noon(1), '10.00', '1.00'),
            make_sale(2, noon(3), '20.00', '2.00'),
            make_sale(3, noon(2), '30.00', '3.00'),
            make_sale(4, noon(3), '5.00', '1.00'),
        ]
        days = build_report(sales)['sales_by_day']
        assert [d['date'] for d in days] == [date(2026, 3, 3), date(2026, 3, 2), date(2026, 3, 1)]
        assert days[0]['total'] == Decimal('25.00')
        assert days[0]['count'] == 2

    def test_day_uses_local_timezone(self):
        # 01:00 UTC on the 5th is 22:00 on the 4th in São Paulo
        sale = make_sale(1, datetime(2026, 3, 5, 1, 0, tzinfo=timezone.utc), '10.00', '1.00')
        assert build_report([sale])['sales_by_day'][0]['date'] == date(2026, 3, 4)

    def test_top_products_by_quantity_with_stable_ties(self):
        sales = [
            make_sale(1, noon(1), '100.00', '10.00', items=[
                make_item('Batom', 2, '20.00'),
                make_item('Perfume', 5, '125.00'),
                make_item('Esmalte', 2, '16.00'),
            ]),
            make_sale(2, noon(2), '10.00', '1.00', items=[make_item('Batom', 1, '10.00')]),
        ]
        top = build_report(sales)['top_products']
        assert [p['name'] for p in top] == ['Perfume', 'Batom', 'Esmalte']
        assert top[1]['quantity'] == 3
        assert top[1]['revenue'] == Decimal('30.00')

    def test_top_products_limited_to_ten(self):
        items = [make_item(f'Produto {i:02d}', 20 - i, '1.00', product_id=i) for i in range(15)]
        top = build_report([make_sale(1, noon(1), '15.00', '1.00', items=items)])['top_products']
        assert len(top) == TOP_PRODUCTS_LIMIT
        assert top[0]['name'] == 'Produto 00'
        assert top[-1]['name'] == 'Produto 09'

    def test_payment_breakdown_with_percentages(self):
        sales = [
            make_sale(1, noon(1), '30.00', '1.00', method='pix'),
            make_sale(2, noon(1), '60.00', '1.00', method='dinheiro'),
            make_sale(3, noon(2), '10.00', '1.00', method='pix'),
        ]
        payments = build_report(sales)['sales_by_payment']
        assert [m['method'] for m in payments] == ['pix', 'dinheiro']
        assert payments[0]['total'] == Decimal('40.00')
        assert payments[0]['count'] == 2
        assert payments[0]['percentage'] == Decimal('40.0')
        assert payments[1]['percentage'] == Decimal('60.0')

    def test_json_view_is_serializable(self):
        sales = [make_sale(1, noon(1), '30.00', '10.00', method='cartao_credito')]
        data = report_to_json(build_report(sales))
        assert data['sales_by_day'][0] == {'date': '2026-03-01', 'total': '30.00', 'count': 1}
        assert data['sales_by_payment'][0]['label'] == 'Cartão Crédito'
        assert data['summary']['avg_ticket'] == '30.00'


class TestDashboard:

    def test_today_sales_use_local_date(self):
        now = datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc)
        sales = [
            make_sale(1, datetime(2026, 3, 10, 13, 0, tzinfo=timezone.utc), '50.00', '20.00'),
            make_sale(2, datetime(2026, 3, 10, 2, 0, tzinfo=timezone.utc), '30.00', '10.00'),
        ]
        stats = build_dashboard(sales, active_product_count=12, low_stock_count=3, now=now)
        assert stats['total_sales'] == Decimal('80.00')
        assert stats['today_sales'] == Decimal('50.00')
        assert stats['sales_count'] == 2
        assert stats['total_profit'] == Decimal('30.00')
        assert stats['product_count'] == 12
        assert stats['low_stock_count'] == 3


class TestCsvExport:

    def test_csv_has_bom_header_and_crlf_rows(self):
        sales = [
            make_sale(1, noon(2), '1234.50', '100.00'),
            make_sale(2, noon(1), '10.00', '1.00'),
        ]
        content = export_csv(build_report(sales))

        assert content.startswith('\ufeff')
        lines = content[1:].split('\r\n')
        assert lines[0] == ','.join(CSV_HEADER)
        assert lines[1] == '02/03/2026,"R$ 1.234,50",1'
        assert lines[2] == '01/03/2026,"R$ 10,00",1'
        assert lines[3] == ''

    def test_csv_without_sales_has_only_header(self):
        content = export_csv(build_report([]))
        assert content == '\ufeff' + ','.join(CSV_HEADER) + '\r\n'


def count_pages(pdf_bytes):
    return len(re.findall(rb'/Type /Page(?![s\w])', pdf_bytes))


class TestPdfExport:

    def test_report_pdf_is_generated(self):
        sales = [make_sale(1, noon(1), '30.00', '10.00', items=[make_item('Batom', 1, '30.00')])]
        pdf = export_report_pdf(build_report(sales), 30, noon(5), business_name='Simply Cosméticos')
        data = pdf.getvalue()
        assert data.startswith(b'%PDF')
        assert count_pages(data) == 1

    def test_empty_report_pdf_is_generated(self):
        data = export_report_pdf(build_report([]), 7, noon(5)).getvalue()
        assert data.startswith(b'%PDF')

    def test_long_report_spans_several_pages(self):
        start = datetime(2025, 1, 1, 15, 0, tzinfo=timezone.utc)
        sales = [make_sale(i, start + timedelta(days=i), '10.00', '2.00') for i in range(90)]
        data = export_report_pdf(build_report(sales), 90, start + timedelta(days=90)).getvalue()
        assert count_pages(data) >= 2

    def test_section_title_moves_to_next_page_with_its_table(self):
        elements = []
        cursor = _PageCursor(elements)
        # Room for the title and the header row, but not for a data row
        cursor.y = PAGE_BREAK_Y - SECTION_TITLE_HEIGHT - ROW_HEIGHT

        _section(cursor, 'Vendas por Dia', getSampleStyleSheet()['Heading2'])
        _add_table(cursor, ['Data', 'Vendas'], [['01/03/2026', 'R$ 10,00']], [100, 100])

        kinds = [type(e) for e in elements]
        assert kinds == [PageBreak, Paragraph, Table]

    def test_section_title_stays_when_table_fits(self):
        elements = []
        cursor = _PageCursor(elements)

        _section(cursor, 'Resumo', getSampleStyleSheet()['Heading2'])
        _add_table(cursor, ['Data', 'Vendas'], [['01/03/2026', 'R$ 10,00']], [100, 100])

        assert [type(e) for e in elements] == [Paragraph, Table]

    def test_sales_pdf_is_generated(self):
        sales = [
            make_sale(7, noon(1), '45.00', '18.00', method='pix', items=[
                make_item('Batom Matte Longa Duração Vermelho Intenso', 2, '20.00'),
                make_item('Perfume', 1, '25.00', product_id=2),
            ]),
        ]
        data = export_sales_pdf(sales, 'Filtros aplicados: Hoje', noon(1)).getvalue()
        assert data.startswith(b'%PDF')


class TestHelpers:

    def test_truncate_name(self):
        assert truncate_name('Batom') == 'Batom'
        assert truncate_name('A' * 25) == 'A' * 25
        assert truncate_name('A' * 30) == 'A' * 25 + '...'

    def test_parse_period_days(self):
        assert parse_period_days('7', 30) == 7
        assert parse_period_days(None, 30) == 30
        assert parse_period_days('abc', 30) == 30
        assert parse_period_days('0', 30) == 30
