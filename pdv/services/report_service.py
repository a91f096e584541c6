"""
Sales reporting: aggregation, dashboard figures and CSV/PDF exports.

Aggregation works on already-loaded Sale rows (items and product names
included), so the same functions serve the report endpoint, the exports
and the tests.
"""
import csv
import io
import logging
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, Iterable, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, PageBreak

from pdv.utils.formatters import (
    to_money, to_local, format_currency, format_date, format_datetime,
    format_payment_method, format_sale_number,
)

logger = logging.getLogger(__name__)

TOP_PRODUCTS_LIMIT = 10
PRODUCT_NAME_MAX_LENGTH = 25
REPORT_PERIODS = (7, 30, 90)
CSV_HEADER = ['Data', 'Vendas', 'Quantidade']
PDF_FOOTER = 'Sistema de Vendas - Relatório Gerado Automaticamente'

# Page geometry (points from the top edge of an A4 page)
PAGE_MARGIN = 0.75 * inch
PAGE_BREAK_Y = A4[1] - PAGE_MARGIN - 0.5 * inch
ROW_HEIGHT = 18
SECTION_TITLE_HEIGHT = 30
SECTION_GAP = 20

PRIMARY_COLOR = colors.HexColor('#3B82F6')
TEXT_COLOR = colors.HexColor('#1F2937')
LIGHT_GRAY = colors.HexColor('#F3F4F6')
ROW_ALT = colors.HexColor('#FAFAFA')


# =====================================================
# AGGREGATION
# =====================================================

def _profit(sale) -> Decimal:
    return to_money(sale.profit)


def build_report(sales: Iterable[Any], tz_name: str = 'America/Sao_Paulo') -> Dict[str, Any]:
    """
    Aggregate a list of sales.

    Returns:
        dict with keys:
            - sales_by_day: [{'date', 'total', 'count'}], most recent date first
            - top_products: [{'name', 'quantity', 'revenue'}], top 10 by quantity
            - sales_by_payment: [{'method', 'total', 'count', 'percentage'}], first-seen order
            - summary: {'total_sales', 'total_profit', 'total_orders', 'avg_ticket'}
    """
    sales = list(sales)
    by_day: Dict[Any, Dict[str, Any]] = {}
    products: 'OrderedDict[str, Dict[str, Any]]' = OrderedDict()
    payments: 'OrderedDict[str, Dict[str, Any]]' = OrderedDict()
    total_sales = Decimal('0.00')
    total_profit = Decimal('0.00')

    for sale in sales:
        amount = to_money(sale.total_amount)
        total_sales += amount
        total_profit += _profit(sale)

        day = to_local(sale.created_at, tz_name).date()
        entry = by_day.setdefault(day, {'date': day, 'total': Decimal('0.00'), 'count': 0})
        entry['total'] += amount
        entry['count'] += 1

        method = payments.setdefault(
            sale.payment_method,
            {'method': sale.payment_method, 'total': Decimal('0.00'), 'count': 0},
        )
        method['total'] += amount
        method['count'] += 1

        for item in sale.items:
            name = item.product.name if item.product is not None else f'Produto {item.product_id}'
            row = products.setdefault(name, {'name': name, 'quantity': 0, 'revenue': Decimal('0.00')})
            row['quantity'] += int(item.quantity)
            row['revenue'] += to_money(item.total_price)

    for method in payments.values():
        if total_sales > 0:
            method['percentage'] = (method['total'] / total_sales * 100).quantize(Decimal('0.1'))
        else:
            method['percentage'] = Decimal('0.0')

    total_orders = len(sales)
    avg_ticket = to_money(total_sales / total_orders) if total_orders else Decimal('0.00')

    return {
        'sales_by_day': sorted(by_day.values(), key=lambda d: d['date'], reverse=True),
        # sorted() is stable: ties keep first-seen order
        'top_products': sorted(products.values(), key=lambda p: p['quantity'], reverse=True)[:TOP_PRODUCTS_LIMIT],
        'sales_by_payment': list(payments.values()),
        'summary': {
            'total_sales': to_money(total_sales),
            'total_profit': to_money(total_profit),
            'total_orders': total_orders,
            'avg_ticket': avg_ticket,
        },
    }


def report_to_json(report: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-safe view of ``build_report`` output (Decimals as strings, ISO dates)."""
    return {
        'sales_by_day': [
            {'date': d['date'].isoformat(), 'total': str(d['total']), 'count': d['count']}
            for d in report['sales_by_day']
        ],
        'top_products': [
            {'name': p['name'], 'quantity': p['quantity'], 'revenue': str(p['revenue'])}
            for p in report['top_products']
        ],
        'sales_by_payment': [
            {
                'method': m['method'],
                'label': format_payment_method(m['method'], short=True),
                'total': str(m['total']),
                'count': m['count'],
                'percentage': str(m['percentage']),
            }
            for m in report['sales_by_payment']
        ],
        'summary': {k: str(v) if isinstance(v, Decimal) else v for k, v in report['summary'].items()},
    }


def build_dashboard(sales: Iterable[Any], active_product_count: int, low_stock_count: int,
                    now: datetime, tz_name: str = 'America/Sao_Paulo') -> Dict[str, Any]:
    """Totals over all sales plus today's sales (local date) and catalog counts."""
    today = to_local(now, tz_name).date()
    total_sales = Decimal('0.00')
    today_sales = Decimal('0.00')
    total_profit = Decimal('0.00')
    count = 0
    for sale in sales:
        amount = to_money(sale.total_amount)
        total_sales += amount
        total_profit += _profit(sale)
        count += 1
        if to_local(sale.created_at, tz_name).date() == today:
            today_sales += amount

    return {
        'total_sales': total_sales,
        'today_sales': today_sales,
        'sales_count': count,
        'total_profit': total_profit,
        'product_count': active_product_count,
        'low_stock_count': low_stock_count,
    }


# =====================================================
# CSV EXPORT
# =====================================================

def export_csv(report: Dict[str, Any]) -> str:
    """One row per day: dd/mm/yyyy, formatted total, integer count (BOM + CRLF)."""
    si = io.StringIO()
    writer = csv.writer(si, lineterminator='\r\n')
    writer.writerow(CSV_HEADER)
    for entry in report['sales_by_day']:
        writer.writerow([
            format_date(entry['date']),
            format_currency(entry['total']),
            int(entry['count']),
        ])
    return '\ufeff' + si.getvalue()


# =====================================================
# PDF EXPORT
# =====================================================

def truncate_name(name: str, limit: int = PRODUCT_NAME_MAX_LENGTH) -> str:
    return name[:limit] + '...' if len(name) > limit else name


class _PageCursor:
    """Running vertical position; inserts a PageBreak once it passes PAGE_BREAK_Y."""

    def __init__(self, elements: list):
        self.elements = elements
        self.y = PAGE_MARGIN

    def fits(self, height: float) -> bool:
        return self.y + height <= PAGE_BREAK_Y

    def new_page(self):
        self.elements.append(PageBreak())
        self.y = PAGE_MARGIN

    def advance(self, height: float):
        if not self.fits(height):
            self.new_page()
        self.y += height


def _table_style(row_count: int) -> TableStyle:
    commands = [
        ('BACKGROUND', (0, 0), (-1, 0), LIGHT_GRAY),
        ('TEXTCOLOR', (0, 0), (-1, -1), TEXT_COLOR),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 10),
        ('FONTSIZE', (0, 1), (-1, -1), 9),
        ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
        ('LINEBELOW', (0, 0), (-1, 0), 0.5, colors.HexColor('#D1D5DB')),
    ]
    if row_count:
        commands.append(('ROWBACKGROUNDS', (0, 1), (-1, -1), [ROW_ALT, colors.white]))
    return TableStyle(commands)


def _add_table(cursor: _PageCursor, header: List[str], rows: List[list], col_widths: List[float]):
    """
    Append ``rows`` as one or more tables, breaking the page when the
    cursor would pass the threshold. The header repeats on every page.
    """
    chunk: List[list] = []
    cursor.advance(ROW_HEIGHT)  # header row

    def flush():
        if chunk:
            table = Table([header] + chunk, colWidths=col_widths)
            table.setStyle(_table_style(len(chunk)))
            cursor.elements.append(table)

    for row in rows:
        if not cursor.fits(ROW_HEIGHT):
            flush()
            chunk = []
            cursor.new_page()
            cursor.advance(ROW_HEIGHT)
        chunk.append(row)
        cursor.y += ROW_HEIGHT
    flush()
    if not rows:
        cursor.elements.append(Table([header], colWidths=col_widths, style=_table_style(0)))


def _styles():
    styles = getSampleStyleSheet()
    return {
        'title': ParagraphStyle(
            'ReportTitle', parent=styles['Heading1'], fontSize=20,
            textColor=PRIMARY_COLOR, spaceAfter=6, fontName='Helvetica-Bold',
        ),
        'meta': ParagraphStyle('ReportMeta', parent=styles['Normal'], fontSize=11, textColor=TEXT_COLOR),
        'section': ParagraphStyle(
            'ReportSection', parent=styles['Heading2'], fontSize=14,
            textColor=PRIMARY_COLOR, spaceBefore=6, spaceAfter=6,
        ),
        'business': ParagraphStyle(
            'ReportBusiness', parent=styles['Normal'], fontSize=10,
            textColor=colors.HexColor('#7F8C8D'), alignment=TA_CENTER,
        ),
    }


def _section(cursor: _PageCursor, title: str, style):
    """Section title; starts a new page unless the title, a table header and one row fit."""
    if not cursor.fits(SECTION_TITLE_HEIGHT + 2 * ROW_HEIGHT):
        cursor.new_page()
    cursor.advance(SECTION_TITLE_HEIGHT)
    cursor.elements.append(Paragraph(escape(title), style))


def _draw_footer(canvas, doc):
    canvas.saveState()
    canvas.setFont('Helvetica', 8)
    canvas.setFillColor(colors.grey)
    canvas.drawString(PAGE_MARGIN, 0.5 * inch, PDF_FOOTER)
    canvas.restoreState()


def _build_pdf(elements: list) -> BytesIO:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=PAGE_MARGIN,
        leftMargin=PAGE_MARGIN,
        topMargin=PAGE_MARGIN,
        bottomMargin=PAGE_MARGIN,
    )
    doc.build(elements, onFirstPage=_draw_footer, onLaterPages=_draw_footer)
    buffer.seek(0)
    return buffer


def _header(cursor: _PageCursor, styles: dict, business_name: str, subtitle: str, generated_at: str):
    cursor.elements.append(Paragraph('Relatório de Vendas', styles['title']))
    if business_name:
        cursor.elements.append(Paragraph(f'<b>{escape(business_name)}</b>', styles['business']))
    cursor.elements.append(Paragraph(escape(subtitle), styles['meta']))
    cursor.elements.append(Paragraph(f'Gerado em: {generated_at}', styles['meta']))
    cursor.elements.append(Spacer(1, 0.2 * inch))
    cursor.y += 100


def export_report_pdf(report: Dict[str, Any], period_days: int, generated_at: datetime,
                      business_name: str = '', tz_name: str = 'America/Sao_Paulo') -> BytesIO:
    """
    A4 report: title, period and generation date; summary block; sales by
    day; top products; payment methods; footer line on every page.
    """
    styles = _styles()
    elements: list = []
    cursor = _PageCursor(elements)
    summary = report['summary']

    _header(cursor, styles, business_name, f'Período: Últimos {period_days} dias',
            format_date(generated_at, tz_name))

    # 1. Summary
    _section(cursor, 'Resumo Geral', styles['section'])
    summary_rows = [
        ['Vendas Totais:', format_currency(summary['total_sales'])],
        ['Lucro Total:', format_currency(summary['total_profit'])],
        ['Total de Pedidos:', str(summary['total_orders'])],
        ['Ticket Médio:', format_currency(summary['avg_ticket'])],
    ]
    summary_table = Table(summary_rows, colWidths=[2 * inch, 2.5 * inch])
    summary_table.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 11),
        ('TEXTCOLOR', (0, 0), (-1, -1), TEXT_COLOR),
    ]))
    elements.append(summary_table)
    cursor.y += ROW_HEIGHT * len(summary_rows) + SECTION_GAP
    elements.append(Spacer(1, 0.2 * inch))

    # 2. Sales by day
    _section(cursor, 'Vendas por Dia', styles['section'])
    _add_table(
        cursor, ['Data', 'Vendas', 'Quantidade'],
        [[format_date(d['date']), format_currency(d['total']), str(d['count'])] for d in report['sales_by_day']],
        [2.5 * inch, 2.2 * inch, 1.8 * inch],
    )
    elements.append(Spacer(1, 0.2 * inch))
    cursor.y += SECTION_GAP

    # 3. Top products
    _section(cursor, 'Produtos Mais Vendidos', styles['section'])
    _add_table(
        cursor, ['Pos.', 'Produto', 'Qtd.', 'Receita'],
        [
            [f'{i}º', truncate_name(p['name']), str(p['quantity']), format_currency(p['revenue'])]
            for i, p in enumerate(report['top_products'], start=1)
        ],
        [0.6 * inch, 3.2 * inch, 1 * inch, 1.7 * inch],
    )
    elements.append(Spacer(1, 0.2 * inch))
    cursor.y += SECTION_GAP

    # 4. Payment methods
    _section(cursor, 'Formas de Pagamento', styles['section'])
    _add_table(
        cursor, ['Método', 'Transações', 'Total', '%'],
        [
            [
                format_payment_method(m['method'], short=True),
                str(m['count']),
                format_currency(m['total']),
                f"{m['percentage']}%",
            ]
            for m in report['sales_by_payment']
        ],
        [2.2 * inch, 1.3 * inch, 1.8 * inch, 1.2 * inch],
    )

    logger.info(f"PDF do relatório gerado: {period_days} dias, {len(report['sales_by_day'])} dias com vendas")
    return _build_pdf(elements)


def export_sales_pdf(sales: List[Any], filter_label: str, generated_at: datetime,
                     business_name: str = '', tz_name: str = 'America/Sao_Paulo') -> BytesIO:
    """Sales list export: financial summary plus one block per sale with its items."""
    styles = _styles()
    elements: list = []
    cursor = _PageCursor(elements)

    total_sales = sum((to_money(s.total_amount) for s in sales), Decimal('0.00'))
    total_profit = sum((_profit(s) for s in sales), Decimal('0.00'))
    avg_ticket = to_money(total_sales / len(sales)) if sales else Decimal('0.00')

    _header(cursor, styles, business_name, filter_label, format_datetime(generated_at, tz_name))

    _section(cursor, 'Resumo Financeiro', styles['section'])
    summary_table = Table([
        [f'Total de Vendas: {format_currency(total_sales)}', f'Quantidade: {len(sales)} vendas'],
        [f'Lucro Total: {format_currency(total_profit)}', f'Ticket Médio: {format_currency(avg_ticket)}'],
    ], colWidths=[3.25 * inch, 3.25 * inch])
    summary_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, -1), LIGHT_GRAY),
        ('BOX', (0, 0), (-1, -1), 0.5, colors.HexColor('#D1D5DB')),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), TEXT_COLOR),
    ]))
    elements.append(summary_table)
    cursor.y += ROW_HEIGHT * 2 + SECTION_GAP
    elements.append(Spacer(1, 0.2 * inch))

    _section(cursor, 'Detalhes das Vendas', styles['section'])
    rows = []
    for sale in sales:
        rows.append([
            format_sale_number(sale.id),
            format_datetime(sale.created_at, tz_name),
            format_payment_method(sale.payment_method),
            format_currency(sale.total_amount),
            format_currency(sale.profit),
        ])
        for item in sale.items:
            name = item.product.name if item.product is not None else f'Produto {item.product_id}'
            rows.append([
                '',
                f'  {truncate_name(name)} x{item.quantity}',
                '',
                format_currency(item.total_price),
                '',
            ])
    _add_table(
        cursor, ['Venda', 'Data / Item', 'Pagamento', 'Total', 'Lucro'],
        rows,
        [0.8 * inch, 2.2 * inch, 1.4 * inch, 1.1 * inch, 1 * inch],
    )

    logger.info(f"PDF de vendas gerado: {len(sales)} vendas")
    return _build_pdf(elements)


# =====================================================
# SERVICE
# =====================================================

class ReportService:
    """Loads sales through the sale/product services and aggregates them."""

    def __init__(self, sale_service, product_service, tz_name: str = 'America/Sao_Paulo'):
        self.sale_service = sale_service
        self.product_service = product_service
        self.tz_name = tz_name

    def get_report(self, days: int, now: datetime) -> Dict[str, Any]:
        sales = self.sale_service.get_sales_in_period(days, now)
        return build_report(sales, self.tz_name)

    def get_dashboard(self, now: datetime) -> Dict[str, Any]:
        sales = self.sale_service.get_sales()
        products = self.product_service.get_products()
        low_stock = self.product_service.get_low_stock_products()
        return build_dashboard(sales, len(products), len(low_stock), now, self.tz_name)


def parse_period_days(value: Optional[str], default: int) -> int:
    """Positive day count from a query string; falls back to ``default``."""
    try:
        days = int(value) if value not in (None, '') else default
    except (TypeError, ValueError):
        return default
    return days if days > 0 else default
