# reporting.py
import json
import logging
from datetime import datetime
from io import BytesIO
from typing import Dict, List

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from core.models import AddressRecord
from utils.helpers import format_timestamp, latency_grade

logger = logging.getLogger(__name__)


def serialize_record(record: AddressRecord) -> Dict:
    """Browser-facing shape of a record"""
    return {
        'ip': record.address,
        'ping': record.latency_ms,
        'provider': record.provider,
        'status': record.status.value,
        'grade': latency_grade(record.latency_ms)
    }


def sort_by_latency(ips: List[Dict]) -> List[Dict]:
    return sorted(ips, key=lambda item: item['ping'])


def summarize(ips: List[Dict], seen_total: int = 0) -> Dict:
    """Dashboard metrics: found, average ping, per-provider counts, session total"""
    providers = {}
    for item in ips:
        providers[item['provider']] = providers.get(item['provider'], 0) + 1

    return {
        'found': len(ips),
        'avg_ping': round(sum(item['ping'] for item in ips) / len(ips)) if ips else 0,
        'min_ping': min((item['ping'] for item in ips), default=0),
        'max_ping': max((item['ping'] for item in ips), default=0),
        'providers': providers,
        'total_unique': seen_total
    }


class ReportGenerator:
    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_styles()

    def _setup_styles(self):
        """Terminal-style report matching the dashboard"""
        self.primary_color = colors.HexColor('#2563eb')
        self.bg_color = colors.HexColor('#f0f0f0')
        self.text_color = colors.HexColor('#000000')
        self.border_color = colors.HexColor('#000000')

        self.grade_colors = {
            'good': colors.HexColor('#059669'),
            'fair': colors.HexColor('#ca8a04'),
            'poor': colors.HexColor('#dc2626')
        }

        self.title_style = ParagraphStyle(
            'Title',
            parent=self.styles['Title'],
            fontSize=20,
            leading=24,
            spaceAfter=12,
            alignment=TA_CENTER,
            textColor=self.text_color,
            fontName='Courier-Bold'
        )

        self.body_style = ParagraphStyle(
            'Body',
            parent=self.styles['Normal'],
            fontSize=10,
            leading=14,
            spaceAfter=6,
            textColor=self.text_color,
            fontName='Courier'
        )

    def generate_text(self, scan_results: Dict) -> str:
        """One address per line, fastest first (the "copy all" payload)"""
        return '\n'.join(item['ip'] for item in sort_by_latency(scan_results.get('ips', [])))

    def generate_json(self, scan_results: Dict) -> str:
        ips = sort_by_latency(scan_results.get('ips', []))
        report = {
            'metadata': {
                'scan_id': scan_results.get('scan_id'),
                'timestamp': scan_results.get('timestamp'),
                'requested_count': scan_results.get('requested_count'),
                'report_version': '1.0',
                'report_generated': datetime.now().isoformat()
            },
            'statistics': summarize(ips, scan_results.get('seen_total', 0)),
            'generation': scan_results.get('stats', {}),
            'ips': ips
        }
        return json.dumps(report, indent=2)

    def generate_pdf(self, scan_results: Dict) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=36,
            leftMargin=36,
            topMargin=36,
            bottomMargin=36,
            title=f"Clean IP Report - {scan_results.get('scan_id', 'Unknown')}",
            author="IP-CORE"
        )

        ips = sort_by_latency(scan_results.get('ips', []))
        summary = summarize(ips, scan_results.get('seen_total', 0))

        story = [
            Paragraph("IP-CORE CLEAN IP REPORT", self.title_style),
            Spacer(1, 0.2 * inch)
        ]

        generated = scan_results.get('timestamp')
        info_data = [
            ["Scan ID:", scan_results.get('scan_id', 'N/A')],
            ["Date:", format_timestamp(generated) if generated else 'Unknown'],
            ["Found:", str(summary['found'])],
            ["Avg Ping:", f"{summary['avg_ping']}ms"],
            ["Total Unique:", str(summary['total_unique'])]
        ]
        info_table = Table(info_data, colWidths=[2 * inch, 3.5 * inch])
        info_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Courier-Bold'),
            ('FONTNAME', (1, 0), (1, -1), 'Courier'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('GRID', (0, 0), (-1, -1), 1, self.border_color),
            ('BACKGROUND', (0, 0), (-1, -1), self.bg_color)
        ]))
        story.extend([info_table, Spacer(1, 0.3 * inch)])

        rows = [["#", "IP Address", "Provider", "Latency"]]
        for index, item in enumerate(ips, start=1):
            rows.append([str(index), item['ip'], item['provider'], f"{item['ping']}ms"])

        table = Table(rows, colWidths=[0.6 * inch, 2.4 * inch, 1.6 * inch, 1.2 * inch], repeatRows=1)
        style = [
            ('FONTNAME', (0, 0), (-1, 0), 'Courier-Bold'),
            ('FONTNAME', (0, 1), (-1, -1), 'Courier'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('BACKGROUND', (0, 0), (-1, 0), self.primary_color),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('ALIGN', (3, 0), (3, -1), 'RIGHT'),
            ('GRID', (0, 0), (-1, -1), 0.5, self.border_color)
        ]
        for row, item in enumerate(ips, start=1):
            style.append(('TEXTCOLOR', (3, row), (3, row), self.grade_colors[item['grade']]))
        table.setStyle(TableStyle(style))
        story.append(table)

        story.append(Spacer(1, 0.3 * inch))
        story.append(Paragraph("Latency values are simulated placeholders, not measurements.", self.body_style))

        doc.build(story)
        logger.info(f"PDF report built for {scan_results.get('scan_id')} ({len(ips)} rows)")
        return buffer.getvalue()
