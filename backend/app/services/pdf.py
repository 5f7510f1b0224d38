"""PDF rendering for the laporan (student progress report card).

Layout follows the school's printed report:
- Letterhead (government line, school name, address) over a rule
- Title, semester and academic year
- Identity block (name, NISN, class, print date)
- Three summary boxes (map progress, stars collected, overall predicate)
- Chapter / topic table with status, score and predicate
- Signature block for parent and class teacher
"""

import io
from datetime import date
from typing import Optional
from xml.sax.saxutils import escape as xml_escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import (
    HRFlowable,
    KeepTogether,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from app.models.report import LaporanBab, LaporanReport, RingkasanLaporan
from app.services.report_builder import STATUS_IN_PROGRESS, STATUS_PASSED


# ──────────────────────────────────────────────
# Colours
# ──────────────────────────────────────────────
_TEAL = colors.HexColor("#008080")
_NAVY = colors.HexColor("#1a3a4a")
_MUTED = colors.HexColor("#666666")
_BORDER = colors.HexColor("#e0e0e0")
_BOX_BORDER = colors.HexColor("#d0d0d0")
_BAB_BG = colors.HexColor("#f5f5f5")
_TOPIK_TEXT = colors.HexColor("#444444")

_STATUS_COLOURS = {
    STATUS_PASSED: colors.HexColor("#28a745"),
    STATUS_IN_PROGRESS: colors.HexColor("#fd7e14"),
}
_STATUS_DEFAULT = colors.HexColor("#6c757d")

_PREDICATE_COLOURS = {
    "SANGAT BAIK": colors.HexColor("#28a745"),
    "BAIK": colors.HexColor("#17a2b8"),
    "CUKUP": colors.HexColor("#ffc107"),
}
_PREDICATE_DEFAULT = colors.HexColor("#dc3545")

_MONTHS_ID = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]

_MARGIN = 1.4 * cm
_PAGE_WIDTH = A4[0] - 2 * _MARGIN


def _sanitize_text(text: Optional[str]) -> str:
    """Escape markup and drop characters Helvetica/latin-1 cannot encode."""
    if not text:
        return ""
    text = text.replace("—", "-").replace("–", "-")
    text = text.encode("latin-1", errors="replace").decode("latin-1")
    return xml_escape(text)


def format_date_id(value: Optional[date]) -> str:
    """Format a date as "17 Agustus 2025"."""
    if value is None:
        return "-"
    return f"{value.day} {_MONTHS_ID[value.month - 1]} {value.year}"


def _semester_label(semester: Optional[str]) -> str:
    return "Genap" if (semester or "").lower() == "genap" else "Ganjil"


class ReportPDFService:
    """Renders a LaporanReport into an A4 PDF."""

    def __init__(
        self,
        city: str = "Palangka Raya",
        government: str = "PEMERINTAH KOTA PALANGKA RAYA",
        subject: str = "IPAS",
    ):
        self.city = city
        self.government = government
        self.subject = subject
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()
        self._page_count = 0

    def _setup_custom_styles(self):
        def add(name, **kw):
            self.styles.add(ParagraphStyle(name=name, **kw))

        add('LetterGov', fontName='Helvetica', fontSize=11, leading=14,
            alignment=TA_CENTER, textColor=_TEAL)
        add('LetterSchool', fontName='Helvetica-Bold', fontSize=13, leading=16,
            alignment=TA_CENTER, textColor=_NAVY)
        add('LetterAddress', fontName='Helvetica-Oblique', fontSize=9, leading=12,
            alignment=TA_CENTER, textColor=_TEAL)
        add('ReportTitle', fontName='Helvetica-Bold', fontSize=14, leading=18,
            alignment=TA_CENTER, textColor=_TEAL, spaceBefore=4)
        add('ReportSubtitle', fontName='Helvetica', fontSize=10, leading=13,
            alignment=TA_CENTER, spaceAfter=12)
        add('InfoLabel', fontName='Helvetica-Bold', fontSize=10, leading=13)
        add('InfoValue', fontName='Helvetica', fontSize=10, leading=13)
        add('BoxValue', fontName='Helvetica-Bold', fontSize=20, leading=24,
            alignment=TA_CENTER, textColor=_TEAL)
        add('BoxPredicate', fontName='Helvetica-Bold', fontSize=12, leading=24,
            alignment=TA_CENTER)
        add('BoxLabel', fontName='Helvetica', fontSize=8, leading=10,
            alignment=TA_CENTER, textColor=_MUTED)
        add('CellHeader', fontName='Helvetica-Bold', fontSize=8, leading=10,
            alignment=TA_CENTER, textColor=colors.white)
        add('CellBab', fontName='Helvetica-Bold', fontSize=8, leading=10,
            alignment=TA_LEFT, textColor=_NAVY)
        add('CellBabCenter', fontName='Helvetica-Bold', fontSize=8, leading=10,
            alignment=TA_CENTER, textColor=_NAVY)
        add('CellTopik', fontName='Helvetica', fontSize=8, leading=10,
            alignment=TA_LEFT, textColor=_TOPIK_TEXT, leftIndent=6)
        add('CellTopikCenter', fontName='Helvetica', fontSize=8, leading=10,
            alignment=TA_CENTER, textColor=_TOPIK_TEXT)
        add('Signature', fontName='Helvetica', fontSize=10, leading=14,
            alignment=TA_CENTER)
        add('SignatureName', fontName='Helvetica-Bold', fontSize=10, leading=14,
            alignment=TA_CENTER, textColor=_TEAL)
        add('SignatureNip', fontName='Helvetica', fontSize=9, leading=12,
            alignment=TA_CENTER)

    # ──────────────────────────────────────────
    # Main entry point
    # ──────────────────────────────────────────
    def generate_report_pdf(self, report: LaporanReport) -> bytes:
        """Render *report* and return the PDF file as bytes."""
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=_MARGIN,
            leftMargin=_MARGIN,
            topMargin=_MARGIN,
            bottomMargin=_MARGIN,
            title="Laporan Hasil Petualangan Belajar",
        )
        self._page_count = 0

        story: list = []
        self._build_letterhead(story, report)
        self._build_identity(story, report)
        self._build_summary_boxes(story, report.ringkasan)
        self._build_score_table(story, report.bab)
        self._build_signatures(story, report)

        doc.build(
            story,
            onFirstPage=self._draw_page_furniture,
            onLaterPages=self._draw_page_furniture,
        )
        buffer.seek(0)
        return buffer.getvalue()

    def _draw_page_furniture(self, canvas, doc):
        """Page number in the footer of every page."""
        canvas.saveState()
        self._page_count += 1
        canvas.setFont('Helvetica', 7)
        canvas.setFillColor(_MUTED)
        canvas.drawRightString(A4[0] - _MARGIN, 0.8 * cm, f"Halaman {self._page_count}")
        canvas.restoreState()

    # ──────────────────────────────────────────
    # Sections
    # ──────────────────────────────────────────
    def _build_letterhead(self, story: list, report: LaporanReport) -> None:
        sekolah = report.sekolah
        school_name = (sekolah.nama if sekolah else None) or "SD NEGERI"
        address = (sekolah.alamat if sekolah else None) or "-"

        story.append(Paragraph(_sanitize_text(self.government), self.styles['LetterGov']))
        story.append(Paragraph(
            f"DINAS PENDIDIKAN - {_sanitize_text(school_name)}", self.styles['LetterSchool']
        ))
        story.append(Paragraph(f"Alamat: {_sanitize_text(address)}", self.styles['LetterAddress']))
        story.append(HRFlowable(width="100%", thickness=1.5, color=_NAVY,
                                spaceBefore=4, spaceAfter=10))

        story.append(Paragraph(
            f"LAPORAN HASIL PETUALANGAN BELAJAR ({_sanitize_text(self.subject)})",
            self.styles['ReportTitle'],
        ))
        semester = _semester_label(sekolah.semester if sekolah else None)
        year = (sekolah.tahun_ajaran if sekolah else None) or "-"
        story.append(Paragraph(
            f"Semester {semester} - Tahun Ajaran {_sanitize_text(year)}",
            self.styles['ReportSubtitle'],
        ))

    def _build_identity(self, story: list, report: LaporanReport) -> None:
        student = report.peserta_didik
        label, value = self.styles['InfoLabel'], self.styles['InfoValue']
        rows = [
            [
                Paragraph("Nama Petualang", label),
                Paragraph(f": {_sanitize_text(student.nama_lengkap if student else None) or '-'}", value),
                Paragraph("Kelas / Fase", label),
                Paragraph(f": {_sanitize_text(report.kelas.nama if report.kelas else None) or '-'}", value),
            ],
            [
                Paragraph("NISN", label),
                Paragraph(f": {_sanitize_text(student.nisn if student else None) or '-'}", value),
                Paragraph("Tanggal Cetak", label),
                Paragraph(f": {format_date_id(report.tanggal_cetak)}", value),
            ],
        ]
        table = Table(rows, colWidths=[
            _PAGE_WIDTH * 0.19, _PAGE_WIDTH * 0.35, _PAGE_WIDTH * 0.17, _PAGE_WIDTH * 0.29,
        ])
        table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('LEFTPADDING', (0, 0), (-1, -1), 0),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
        ]))
        story.append(table)
        story.append(Spacer(1, 14))

    def _build_summary_boxes(self, story: list, summary: RingkasanLaporan) -> None:
        predicate_style = ParagraphStyle(
            'BoxPredicateColoured',
            parent=self.styles['BoxPredicate'],
            textColor=_PREDICATE_COLOURS.get(summary.predikat_petualang, _PREDICATE_DEFAULT),
        )
        gap = 0.5 * cm
        box_w = (_PAGE_WIDTH - 2 * gap) / 3
        rows = [
            [
                Paragraph(f"{summary.progress_peta}%", self.styles['BoxValue']), "",
                Paragraph(f"{summary.bintang_terkumpul}/{summary.total_bintang}",
                          self.styles['BoxValue']), "",
                Paragraph(summary.predikat_petualang, predicate_style),
            ],
            [
                Paragraph("Progress Peta", self.styles['BoxLabel']), "",
                Paragraph("Bintang Terkumpul", self.styles['BoxLabel']), "",
                Paragraph("Predikat Petualang", self.styles['BoxLabel']),
            ],
        ]
        table = Table(rows, colWidths=[box_w, gap, box_w, gap, box_w])
        style = [('VALIGN', (0, 0), (-1, -1), 'MIDDLE')]
        for col in (0, 2, 4):
            style.append(('BOX', (col, 0), (col, 1), 1, _BOX_BORDER))
        table.setStyle(TableStyle(style))
        story.append(table)
        story.append(Spacer(1, 14))

    def _build_score_table(self, story: list, chapters: list[LaporanBab]) -> None:
        """One shaded row per bab, followed by one row per topik."""
        col_widths = [
            1.1 * cm,
            _PAGE_WIDTH - 1.1 * cm - 2.2 * cm - 1.8 * cm - 2.2 * cm,
            2.2 * cm,
            1.8 * cm,
            2.2 * cm,
        ]
        header = [
            Paragraph(text, self.styles['CellHeader'])
            for text in ("No", f"Misi Petualangan (Materi {_sanitize_text(self.subject)})",
                         "Status", "Nilai", "Predikat")
        ]
        rows: list = [header]
        style: list = [
            ('BACKGROUND', (0, 0), (-1, 0), _NAVY),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('GRID', (0, 0), (-1, -1), 0.5, _BORDER),
        ]

        for index, bab in enumerate(chapters, start=1):
            status_style = ParagraphStyle(
                f'BabStatus{index}',
                parent=self.styles['CellBabCenter'],
                textColor=_STATUS_COLOURS.get(bab.status, _STATUS_DEFAULT),
            )
            title = f"BAB {_sanitize_text(bab.nomor)}: {_sanitize_text((bab.judul or '').upper())}"
            style.append(('BACKGROUND', (0, len(rows)), (-1, len(rows)), _BAB_BG))
            rows.append([
                Paragraph(str(index), self.styles['CellBabCenter']),
                Paragraph(title, self.styles['CellBab']),
                Paragraph(bab.status, status_style),
                Paragraph(str(bab.nilai) if bab.nilai is not None else "-",
                          self.styles['CellBabCenter']),
                Paragraph(bab.predikat, self.styles['CellBabCenter']),
            ])

            for topik in bab.topik:
                rows.append([
                    "",
                    Paragraph(
                        f"Topik {_sanitize_text(topik.kode)}: {_sanitize_text(topik.judul)}",
                        self.styles['CellTopik'],
                    ),
                    "",
                    Paragraph(str(topik.nilai) if topik.nilai is not None else "-",
                              self.styles['CellTopikCenter']),
                    Paragraph(topik.predikat, self.styles['CellTopikCenter']),
                ])

        table = Table(rows, colWidths=col_widths, repeatRows=1)
        table.setStyle(TableStyle(style))
        story.append(table)
        story.append(Spacer(1, 30))

    def _build_signatures(self, story: list, report: LaporanReport) -> None:
        guru = report.guru
        kelas_name = (report.kelas.nama if report.kelas else None) or ""
        guru_name = _sanitize_text(guru.nama_lengkap if guru else None) or "&nbsp;" * 30
        guru_nip = (guru.nip if guru else None) or "." * 40
        sig = self.styles['Signature']

        left = [
            Paragraph("Mengetahui,", sig),
            Paragraph("Orang Tua/Wali", sig),
            Spacer(1, 42),
            Paragraph("( " + "." * 40 + " )", sig),
        ]
        right = [
            Paragraph(
                f"{_sanitize_text(self.city)}, {format_date_id(report.tanggal_cetak)}", sig
            ),
            Paragraph(f"Guru Kelas {_sanitize_text(kelas_name)}", sig),
            Spacer(1, 42),
            Paragraph(
                f"( {guru_name} )",
                self.styles['SignatureName'],
            ),
            Paragraph(f"NIP. {_sanitize_text(guru_nip)}", self.styles['SignatureNip']),
        ]
        table = Table([[left, right]], colWidths=[_PAGE_WIDTH / 2, _PAGE_WIDTH / 2])
        table.setStyle(TableStyle([('VALIGN', (0, 0), (-1, -1), 'TOP')]))
        # keep the signature block on one page
        story.append(KeepTogether([table]))
