import io
from datetime import date, datetime, time, timedelta
from types import SimpleNamespace

import pdfplumber
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth

from schoolhub.messages import t
from schoolhub.utils import dates
from schoolhub.utils.pdf_export import (
    PAGE_TOP,
    POSTS_HEADING,
    SURVEYS_HEADING,
    TIMETABLE_HEADING,
    TITLE,
    WRAP_WIDTH,
    TextOp,
    ascii_fold,
    build_export_layout,
    export_filename,
    render_pdf,
    truncate_body,
    wrap_text,
)

GENERATED = datetime(2026, 10, 19, 8, 5)


def _lesson(day, subject='Toan', room='A101'):
    return SimpleNamespace(lesson_date=day, lesson_time=time(7, 30), subject=subject, room=room)


def _post(title='Thong bao', body='Noi dung', day=date(2026, 10, 1)):
    return SimpleNamespace(title=title, body=body, publish_date=day)


def _pdf_text(content: bytes) -> str:
    with pdfplumber.open(io.BytesIO(content)) as pdf:
        return "\n".join(page.extract_text() or "" for page in pdf.pages)


def test_empty_export_holds_only_header_and_date():
    layout = build_export_layout('Nguyễn Văn An', GENERATED, [], [], [])
    assert len(layout.pages) == 1
    assert layout.texts() == [TITLE, 'Hoc sinh: Nguyen Van An', 'Ngay xuat: 19/10/2026 08:05']


def test_sections_appear_only_with_data():
    layout = build_export_layout(
        'An', GENERATED,
        [_lesson(date(2026, 10, 20))],
        [_post()],
        [('Em muốn đi đâu?', 'Đà Lạt')],
    )
    texts = layout.texts()
    assert TIMETABLE_HEADING in texts
    assert POSTS_HEADING in texts
    assert SURVEYS_HEADING in texts
    assert '20/10/2026' in texts and '07:30' in texts
    assert '01/10/2026: Thong bao' in texts
    assert 'Cau hoi: Em muon di dau?' in texts
    assert 'Tra loi: Da Lat' in texts

    only_posts = build_export_layout('An', GENERATED, [], [_post()], []).texts()
    assert TIMETABLE_HEADING not in only_posts and SURVEYS_HEADING not in only_posts


def test_timetable_rows_break_to_a_new_page():
    lessons = [_lesson(date(2026, 10, 1) + timedelta(days=i)) for i in range(40)]
    layout = build_export_layout('An', GENERATED, lessons, [], [])
    assert len(layout.pages) == 2
    first_rows = [op for op in layout.pages[0] if isinstance(op, TextOp) and op.x == 20 and '/' in op.text and op.y > 60]
    assert len(first_rows) == 29
    assert all(op.y <= 270 for op in first_rows)
    assert layout.pages[1][0].y == PAGE_TOP


def test_long_post_body_is_truncated_and_wrapped():
    body = 'abc ' * 40
    layout = build_export_layout('An', GENERATED, [], [_post(title='T', body=body)], [])
    body_lines = [text for text in layout.texts() if text.startswith('abc')]
    assert len(body_lines) > 1
    assert ' '.join(body_lines) == truncate_body(body).strip()
    assert truncate_body(body).endswith('...')
    assert truncate_body('short') == 'short'


def test_every_wrapped_survey_line_respects_page_bottom():
    long_answer = 'rat dai ' * 1000
    layout = build_export_layout('An', GENERATED, [], [], [('Cau hoi dai', long_answer)])
    assert len(layout.pages) > 1
    for page in layout.pages:
        assert all(op.y <= 270 for op in page if isinstance(op, TextOp))


def test_ascii_fold_and_filename():
    assert ascii_fold('Đà Lạt, Hồ Chí Minh') == 'Da Lat, Ho Chi Minh'
    assert export_filename('Nguyễn Văn An', date(2026, 10, 19)) == 'hoc_tap_Nguyễn Văn An_19102026.pdf'
    assert export_filename(None, date(2026, 1, 2)) == 'hoc_tap_hoc_sinh_02012026.pdf'


def test_render_produces_pdf_pages():
    lessons = [_lesson(date(2026, 10, 1) + timedelta(days=i)) for i in range(40)]
    content = render_pdf(build_export_layout('An', GENERATED, lessons, [], []))
    assert content.startswith(b'%PDF')
    with pdfplumber.open(io.BytesIO(content)) as pdf:
        assert len(pdf.pages) == 2


def test_export_endpoint_with_no_data(client, student_headers):
    r = client.get('/export/pdf', headers=student_headers)
    assert r.status_code == 200
    assert r.headers['content-type'] == 'application/pdf'
    stamp = dates.today().strftime('%d%m%Y')
    assert r.headers['content-disposition'].startswith(f'attachment; filename="hoc_tap_Nguyen Van An_{stamp}.pdf"')
    text = _pdf_text(r.content)
    assert TITLE in text
    assert 'Hoc sinh: Nguyen Van An' in text
    assert 'Ngay xuat:' in text
    for heading in (TIMETABLE_HEADING, POSTS_HEADING, SURVEYS_HEADING):
        assert heading not in text


def test_export_endpoint_includes_answered_surveys_only(client, admin_headers, student_headers):
    client.post('/timetable', json={'lesson_date': '2026-10-20', 'lesson_time': '07:30', 'subject': 'Toán', 'room': 'A101'}, headers=admin_headers)
    client.post('/posts', json={'title': 'Họp lớp', 'body': 'Chiều thứ sáu'}, headers=admin_headers)
    answered = client.post('/surveys', json={'question': 'Đi đâu?', 'kind': 'multiple_choice', 'options': ['Đà Lạt', 'Huế']}, headers=admin_headers).json()
    client.post('/surveys', json={'question': 'Chưa trả lời', 'kind': 'text'}, headers=admin_headers)
    client.post(f"/surveys/{answered['id']}/responses", json={'answer': 'Huế'}, headers=student_headers)

    text = _pdf_text(client.get('/export/pdf', headers=student_headers).content)
    assert TIMETABLE_HEADING in text and POSTS_HEADING in text and SURVEYS_HEADING in text
    assert 'Toan' in text
    assert 'Hop lop' in text
    assert 'Cau hoi: Di dau?' in text
    assert 'Tra loi: Hue' in text
    assert 'Chua tra loi' not in text


def test_export_is_for_students(client, admin_headers):
    r = client.get('/export/pdf', headers=admin_headers)
    assert r.status_code == 403
    assert r.json()['detail'] == t('export.students_only')


def _find(layout, text):
    for index, page in enumerate(layout.pages):
        for op in page:
            if isinstance(op, TextOp) and op.text == text:
                return index, op.y
    raise AssertionError(f"{text!r} not drawn")


def test_section_heading_moves_to_next_page_past_section_limit():
    start = date(2026, 10, 1)
    # 18 lessons leave the cursor at y=206, 17 leave it at y=199
    crowded = [_lesson(start + timedelta(days=i)) for i in range(18)]
    assert _find(build_export_layout('An', GENERATED, crowded, [_post()], []), POSTS_HEADING) == (1, PAGE_TOP)
    assert _find(build_export_layout('An', GENERATED, crowded, [], [('Q', 'A')]), SURVEYS_HEADING) == (1, PAGE_TOP)

    roomy = crowded[:17]
    assert _find(build_export_layout('An', GENERATED, roomy, [_post()], []), POSTS_HEADING) == (0, 199)


def test_items_move_to_next_page_past_item_limit():
    posts = [_post(title=f'Tin {i}') for i in range(10)]
    layout = build_export_layout('An', GENERATED, [], posts, [])
    # each short post takes 22 mm starting at y=60
    assert _find(layout, '01/10/2026: Tin 8') == (0, 236)
    assert _find(layout, '01/10/2026: Tin 9') == (1, PAGE_TOP)

    surveys = [(f'Q{i}', 'A') for i in range(11)]
    layout = build_export_layout('An', GENERATED, [], [], surveys)
    # each survey takes 20 mm starting at y=60
    assert _find(layout, 'Cau hoi: Q9') == (0, 240)
    assert _find(layout, 'Cau hoi: Q10') == (1, PAGE_TOP)


def test_words_wider_than_the_page_are_broken():
    limit = WRAP_WIDTH * mm
    lines = wrap_text('x' * 400)
    assert len(lines) > 1
    assert ''.join(lines) == 'x' * 400
    assert all(stringWidth(line, 'Helvetica', 10) <= limit for line in lines)

    layout = build_export_layout('An', GENERATED, [], [], [('Q', 'https://example.com/' + 'a' * 300)])
    for op in (op for page in layout.pages for op in page if isinstance(op, TextOp)):
        assert stringWidth(op.text, op.font, op.size) <= limit
