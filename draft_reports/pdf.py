from __future__ import annotations  # Styled PDF rendering for life-story drafts

import os
from datetime import datetime
from typing import Any, List, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from draft_lifecycle.models import Draft, InterviewSummary, TransitionRecord
from draft_lifecycle.stages import get_stage_metadata


DEJAVU_SANS = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"  # System font
DEJAVU_SANS_BOLD = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"  # System font

ACCENT = (45, 115, 245)  # Palette accent
TEXT = (34, 34, 34)  # Primary text color
MUTED = (100, 100, 100)  # Secondary text color
RULE = (230, 230, 230)  # Divider color
ROW_FILL = (247, 250, 255)  # Zebra row background


def _hex_to_rgb(value: str) -> Tuple[int, int, int]:  # "#rrggbb" to an RGB tuple
    raw = value.lstrip("#")
    return int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16)


def _format_datetime(value: datetime | None) -> str:  # Format timestamp for display
    if not value:
        return "-"
    return value.strftime("%d %b %Y, %I:%M %p").lstrip("0").replace(" 0", " ")


def _rating_value(value: float | None) -> str:  # One-decimal rating for display
    if value is None:
        return "N/A"
    return f"{value:.1f}/5"


def _effective_width(pdf: FPDF) -> float:
    return float(pdf.w) - float(pdf.l_margin) - float(pdf.r_margin)


class DraftPDF(FPDF):  # PDF with banner header and paginated footer
    def __init__(self, *args, accent: Tuple[int, int, int] = ACCENT, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.accent = accent
        self.header_title = "Life Story Draft"
        self._font_regular = "Helvetica"
        self._font_bold = "Helvetica"
        self._supports_unicode = False

    def use_unicode_fonts(self) -> None:  # Switch to DejaVu when installed
        if not (os.path.exists(DEJAVU_SANS) and os.path.exists(DEJAVU_SANS_BOLD)):
            return
        self.add_font("DejaVu", "", DEJAVU_SANS)
        self.add_font("DejaVu", "B", DEJAVU_SANS_BOLD)
        self._font_regular = "DejaVu"
        self._font_bold = "DejaVu"
        self._supports_unicode = True

    def prepare_text(self, text: Any) -> str:  # Sanitize text for core fonts
        value = "" if text is None else str(text)
        if self._supports_unicode:
            return value
        cleaned = value.replace("•", "-").replace("–", "-").replace("—", "-")
        return cleaned.encode("latin-1", "ignore").decode("latin-1")

    def header(self) -> None:
        usable = _effective_width(self)
        if self.page_no() == 1:
            self.set_fill_color(*self.accent)
            self.rect(0, 0, self.w, 20, style="F")
            self.set_text_color(255, 255, 255)
            self.set_xy(self.l_margin, 6)
            self.set_font(self._font_bold, "B", 16)
            self.cell(usable, 8, self.prepare_text(self.header_title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            self.set_text_color(*TEXT)
            self.ln(6)
        else:
            self.set_text_color(80, 80, 80)
            self.set_xy(self.l_margin, 8)
            self.set_font(self._font_bold, "B", 12)
            self.cell(usable, 6, self.prepare_text(self.header_title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            mark = self.get_y()
            self.set_draw_color(*self.accent)
            self.set_line_width(0.4)
            self.line(self.l_margin, mark + 1, self.w - self.r_margin, mark + 1)
            self.set_text_color(*TEXT)
            self.ln(4)

    def footer(self) -> None:
        self.set_y(-12)
        self.set_draw_color(*RULE)
        self.set_line_width(0.2)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_text_color(120, 120, 120)
        self.set_font(self._font_regular, "", 9)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="R")


def _section_title(pdf: DraftPDF, title: str) -> None:
    pdf.set_text_color(*TEXT)
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf._font_bold, "B", 13)
    pdf.cell(0, 9, pdf.prepare_text(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y()
    pdf.line(pdf.l_margin, y, pdf.l_margin + _effective_width(pdf), y)
    pdf.ln(2)


def _meta_block(pdf: DraftPDF, rows: List[Tuple[str, str]]) -> None:  # Two-column label/value grid
    col = _effective_width(pdf) / 2.0
    line = 6
    for idx in range(0, len(rows), 2):
        left = rows[idx]
        right = rows[idx + 1] if idx + 1 < len(rows) else ("", "")
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf._font_regular, "", 10)
        pdf.cell(col, line, pdf.prepare_text(left[0]), new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, pdf.prepare_text(right[0]), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf._font_bold, "B", 11)
        pdf.cell(col, line, pdf.prepare_text(left[1]), new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, pdf.prepare_text(right[1]), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _muted_note(pdf: DraftPDF, text: str) -> None:
    pdf.set_x(pdf.l_margin)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf._font_regular, "", 10)
    pdf.multi_cell(_effective_width(pdf), 6, pdf.prepare_text(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_text_color(*TEXT)
    pdf.ln(2)


def _bullets(pdf: DraftPDF, label: str, items: Sequence[str]) -> None:
    bullet = "•" if pdf._supports_unicode else "-"
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf._font_bold, "B", 11)
    pdf.cell(0, 7, pdf.prepare_text(label), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    if not items:
        _muted_note(pdf, "None recorded.")
        return
    pdf.set_font(pdf._font_regular, "", 11)
    for item in items:
        pdf.set_x(pdf.l_margin)
        pdf.multi_cell(
            _effective_width(pdf), 6, pdf.prepare_text(f"{bullet} {item}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT
        )
    pdf.ln(2)


def _table(pdf: DraftPDF, headers: Sequence[str], ratios: Sequence[float], rows: Sequence[Sequence[str]]) -> None:
    widths = [_effective_width(pdf) * ratio for ratio in ratios]
    pdf.set_x(pdf.l_margin)
    pdf.set_fill_color(*ACCENT)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font(pdf._font_bold, "B", 10)
    for idx, title in enumerate(headers):
        pdf.cell(widths[idx], 8, pdf.prepare_text(title), align="L", fill=True)
    pdf.ln(8)
    pdf.set_text_color(*TEXT)
    pdf.set_font(pdf._font_regular, "", 9)
    for row_idx, row in enumerate(rows):
        fill = row_idx % 2 == 0
        if fill:
            pdf.set_fill_color(*ROW_FILL)
        pdf.set_x(pdf.l_margin)
        for idx, value in enumerate(row):
            pdf.cell(widths[idx], 7, pdf.prepare_text(value), border=0, fill=fill)
        pdf.ln(7)
    pdf.ln(2)


def _render_progress(pdf: DraftPDF, draft: Draft) -> None:
    sections = draft.progress.sections
    rows = [
        ("Completion", f"{draft.progress.completion}%"),
        ("Personal", f"{sections.personal}%"),
        ("Professional", f"{sections.professional}%"),
        ("Recommendations", f"{sections.recommendations}%"),
    ]
    _meta_block(pdf, rows)
    if draft.progress.interview_types:
        _table(
            pdf,
            ["Interview type", "Completed", "Total", "Progress"],
            [0.4, 0.2, 0.2, 0.2],
            [
                (kind, str(item.completed), str(item.total), f"{item.percentage}%")
                for kind, item in draft.progress.interview_types.items()
            ],
        )


def _render_interviews(pdf: DraftPDF, interviews: Sequence[InterviewSummary]) -> None:
    if not interviews:
        _muted_note(pdf, "No interviews reflected in this draft yet.")
        return
    for summary in interviews:
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*ACCENT)
        pdf.set_font(pdf._font_bold, "B", 11)
        heading = f"{summary.type.title()} interview - {_rating_value(summary.rating)}"
        pdf.cell(0, 7, pdf.prepare_text(heading), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf._font_regular, "", 9)
        byline = f"{summary.interviewer or 'Unknown interviewer'} | {_format_datetime(summary.completed_at)}"
        pdf.cell(0, 5, pdf.prepare_text(byline), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf._font_regular, "", 10)
        pdf.multi_cell(
            _effective_width(pdf), 5.5, pdf.prepare_text(summary.summary or "-"), new_x=XPos.LMARGIN, new_y=YPos.NEXT
        )
        pdf.ln(3)


def _history_rows(history: Sequence[TransitionRecord]) -> List[Tuple[str, str, str, str, str]]:
    rows = []
    for entry in history:
        origin = entry.from_stage.value if entry.from_stage else "-"
        rows.append(
            (
                _format_datetime(entry.timestamp),
                entry.action,
                f"{origin} > {entry.to_stage.value}",
                f"v{entry.version}",
                entry.triggered_by,
            )
        )
    return rows


def generate_draft_pdf(draft: Draft) -> bytes:
    """Render ``draft`` as a paginated PDF document."""

    pdf = DraftPDF(accent=_hex_to_rgb(get_stage_metadata(draft.stage).color))
    pdf.alias_nb_pages()
    pdf.use_unicode_fonts()
    pdf.header_title = draft.title or "Life Story Draft"
    pdf.set_margins(15, 22, 15)
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    _section_title(pdf, "Draft Overview")
    recommendations = draft.content.recommendations
    _meta_block(
        pdf,
        [
            ("Client", draft.client_name or draft.content.personal.name or "-"),
            ("Session ID", draft.session_id),
            ("Stage", draft.stage.value.replace("_", " ").title()),
            ("Version", str(draft.version)),
            ("Interviews", f"{draft.interview_count}/{draft.total_interviews}"),
            ("Overall rating", _rating_value(recommendations.overall_rating if draft.interview_count else None)),
            ("Created", _format_datetime(draft.created_at)),
            ("Updated", _format_datetime(draft.updated_at)),
        ],
    )

    _section_title(pdf, "Progress")
    _render_progress(pdf, draft)

    _section_title(pdf, "Recommendations")
    _bullets(pdf, "Strengths", recommendations.strengths)
    _bullets(pdf, "Areas for improvement", recommendations.improvements)
    _bullets(pdf, "Skills", draft.content.professional.skills)
    _bullets(pdf, "Achievements", draft.content.professional.achievements)

    _section_title(pdf, "Interview Summaries")
    _render_interviews(pdf, draft.content.interviews)

    _section_title(pdf, "History")
    _table(
        pdf,
        ["When", "Action", "Stages", "Version", "By"],
        [0.24, 0.24, 0.28, 0.1, 0.14],
        _history_rows(draft.history),
    )

    return bytes(pdf.output())


__all__ = ["generate_draft_pdf"]
