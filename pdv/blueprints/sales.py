"""Sales blueprint - listing, detail, deletion, receipt and PDF export."""
from flask import Blueprint, jsonify, request, render_template, send_file, g, current_app

from pdv.container import get_container
from pdv.database import utcnow
from pdv.exceptions import BusinessLogicError
from pdv.middleware import require_login, require_admin
from pdv.models import normalize_payment_method
from pdv.services.receipt_service import receipt_from_sale
from pdv.services.report_service import export_sales_pdf
from pdv.services.sale_service import SALE_PERIODS, period_start, search_sales
from pdv.utils.formatters import format_payment_method
from pdv.utils.responses import result_response

sales_bp = Blueprint('sales', __name__, url_prefix='/sales')

PERIOD_LABELS = {'today': 'Hoje', 'week': '7 dias', 'month': '30 dias'}


def _get_filters():
    """Extract and validate list filters from the query string."""
    period = request.args.get('period', 'all')
    if period not in SALE_PERIODS:
        raise BusinessLogicError(f'Período inválido: {period}')

    payment_method = request.args.get('payment_method', 'all')
    if payment_method != 'all':
        try:
            payment_method = normalize_payment_method(payment_method)
        except ValueError as e:
            raise BusinessLogicError(str(e))

    return period, payment_method, request.args.get('q', '').strip()


def _load_filtered(period, payment_method, term):
    tz_name = current_app.config['APP_TIMEZONE']
    store = get_container().sale_store()
    result = store.load(
        start=period_start(period, utcnow(), tz_name),
        payment_method=None if payment_method == 'all' else payment_method,
    )
    if result.ok:
        result.data = search_sales(result.data, term)
    return result


@sales_bp.route('/')
@require_login
def list_sales():
    """Sales newest first; filters: period, payment_method, q."""
    period, payment_method, term = _get_filters()
    result = _load_filtered(period, payment_method, term)
    if not result.ok:
        return result_response(result)
    return jsonify({
        'status': 'success',
        'filters': {'period': period, 'payment_method': payment_method, 'q': term},
        'sales': [sale.to_dict() for sale in result.data],
    })


@sales_bp.route('/export.pdf')
@require_login
def export_pdf():
    period, payment_method, term = _get_filters()
    result = _load_filtered(period, payment_method, term)
    if not result.ok:
        return result_response(result)

    filter_text = 'Filtros aplicados: '
    if period != 'all':
        filter_text += PERIOD_LABELS[period] + ' '
    if payment_method != 'all':
        filter_text += f'Pagamento: {format_payment_method(payment_method)} '
    if term:
        filter_text += f'Busca: {term} '

    pdf = export_sales_pdf(
        result.data, filter_text.strip(), utcnow(),
        business_name=current_app.config['BUSINESS_NAME'],
        tz_name=current_app.config['APP_TIMEZONE'],
    )
    return send_file(pdf, mimetype='application/pdf', as_attachment=True,
                     download_name=f'vendas-{utcnow().strftime("%Y-%m-%d")}.pdf')


@sales_bp.route('/<int:sale_id>')
@require_login
def get_sale(sale_id):
    result = get_container().sale_store().get_sale(sale_id)
    return result_response(result, sale=result.data.to_dict() if result.ok else None)


@sales_bp.route('/<int:sale_id>/delete', methods=['POST'])
@require_login
@require_admin
def delete_sale(sale_id):
    """Delete a sale and restore its stock (admin only)."""
    result = get_container().sale_store().delete_sale(sale_id, g.user)
    if result.ok:
        current_app.logger.info(f"Venda {sale_id} excluída por user_id={g.user_id}")
    return result_response(result, detail=result.data if result.ok else None)


@sales_bp.route('/<int:sale_id>/receipt')
@require_login
def receipt(sale_id):
    """Printable receipt (HTML) for a finished sale."""
    result = get_container().sale_store().get_sale(sale_id)
    if not result.ok:
        return result_response(result)
    context = receipt_from_sale(
        result.data, current_app.config['BUSINESS_NAME'], current_app.config['APP_TIMEZONE'],
    )
    return render_template('sales/receipt.html', receipt=context)
