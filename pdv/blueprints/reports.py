"""Reports blueprint - period aggregation and CSV/PDF exports."""
from flask import Blueprint, jsonify, request, Response, send_file, current_app

from pdv.container import get_container
from pdv.database import utcnow
from pdv.exceptions import PdvError
from pdv.middleware import require_login
from pdv.services.report_service import (
    export_csv, export_report_pdf, parse_period_days, report_to_json,
)

reports_bp = Blueprint('reports', __name__, url_prefix='/reports')


def _load_report():
    days = parse_period_days(request.args.get('days'), current_app.config['REPORT_DEFAULT_PERIOD_DAYS'])
    report = get_container().report_service.get_report(days, utcnow())
    return days, report


def _error(e: PdvError):
    current_app.logger.error(f"Erro ao carregar relatórios: {e.message}")
    return jsonify({
        'status': 'error',
        'notification': {
            'title': 'Erro ao carregar relatórios',
            'description': 'Não foi possível carregar os dados dos relatórios.',
            'variant': 'destructive',
        },
        'message': e.message,
    }), e.status_code


@reports_bp.route('/')
@require_login
def index():
    """Report for the last ?days=N days (default 30)."""
    try:
        days, report = _load_report()
    except PdvError as e:
        return _error(e)
    return jsonify({'status': 'success', 'days': days, **report_to_json(report)})


@reports_bp.route('/export.csv')
@require_login
def export_csv_file():
    try:
        days, report = _load_report()
    except PdvError as e:
        return _error(e)
    return Response(
        export_csv(report),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment;filename=relatorio-vendas-{days}-dias.csv'},
    )


@reports_bp.route('/export.pdf')
@require_login
def export_pdf_file():
    try:
        days, report = _load_report()
    except PdvError as e:
        return _error(e)
    pdf = export_report_pdf(
        report, days, utcnow(),
        business_name=current_app.config['BUSINESS_NAME'],
        tz_name=current_app.config['APP_TIMEZONE'],
    )
    return send_file(pdf, mimetype='application/pdf', as_attachment=True,
                     download_name=f'relatorio-vendas-{days}-dias.pdf')
