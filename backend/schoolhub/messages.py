"""Localized user-facing messages.

Every message shown to a user (validation problems, failed store calls,
confirmation prompts) is looked up here by id so the API speaks the
school's language. The active locale comes from `settings.LOCALE`;
unknown locales fall back to Vietnamese.
"""

from .config import settings

DEFAULT_LOCALE = "vi"

CATALOG = {
    "vi": {
        "auth.missing_credentials": "Vui lòng nhập đầy đủ email và mật khẩu",
        "auth.invalid_credentials": "Email hoặc mật khẩu không đúng",
        "auth.missing_secret": "Vui lòng nhập mã bí mật",
        "auth.invalid_secret": "Mã bí mật không đúng",
        "auth.email_taken": "Email đã được đăng ký",
        "auth.invalid_role": "Vai trò không hợp lệ",
        "auth.too_many_attempts": "Đăng nhập sai quá nhiều lần, vui lòng thử lại sau {retry_after} giây",
        "auth.login_failed": "Đăng nhập thất bại",
        "auth.logout_failed": "Đăng xuất thất bại",
        "auth.editors_only": "Chỉ quản trị viên và ban cán sự được phép thực hiện thao tác này",
        "auth.admins_only": "Chỉ quản trị viên được phép thực hiện thao tác này",
        "auth.students_only": "Chỉ học sinh được phép thực hiện thao tác này",
        "role.admin": "Quản trị viên",
        "role.bcs": "Ban cán sự",
        "role.student": "Học sinh",
        "role.unknown": "Không xác định",
        "profile.load_failed": "Không thể tải danh sách tài khoản",
        "profile.save_failed": "Không thể tạo tài khoản",
        "timetable.missing_fields": "Vui lòng điền đầy đủ thông tin",
        "timetable.not_found": "Không tìm thấy lịch học",
        "timetable.load_failed": "Không thể tải lịch học",
        "timetable.save_failed": "Không thể lưu lịch học",
        "timetable.delete_failed": "Không thể xóa lịch học",
        "timetable.confirm_delete": "Bạn có chắc chắn muốn xóa lịch học này?",
        "post.missing_fields": "Vui lòng điền đầy đủ thông tin",
        "post.not_found": "Không tìm thấy bài đăng",
        "post.load_failed": "Không thể tải bài đăng",
        "post.save_failed": "Không thể lưu bài đăng",
        "post.delete_failed": "Không thể xóa bài đăng",
        "post.mark_read_failed": "Không thể đánh dấu đã đọc",
        "post.confirm_delete": "Bạn có chắc chắn muốn xóa bài đăng này?",
        "survey.missing_question": "Vui lòng nhập câu hỏi",
        "survey.invalid_kind": "Loại câu hỏi không hợp lệ",
        "survey.too_few_options": "Câu hỏi trắc nghiệm phải có ít nhất 2 lựa chọn",
        "survey.missing_answer": "Vui lòng nhập câu trả lời",
        "survey.invalid_option": "Lựa chọn không hợp lệ",
        "survey.already_responded": "Bạn đã trả lời khảo sát này",
        "survey.not_found": "Không tìm thấy khảo sát",
        "survey.load_failed": "Không thể tải khảo sát",
        "survey.save_failed": "Không thể lưu khảo sát",
        "survey.delete_failed": "Không thể xóa khảo sát",
        "survey.submit_failed": "Không thể gửi câu trả lời",
        "survey.results_failed": "Không thể tải kết quả khảo sát",
        "survey.no_responses": "Chưa có ai trả lời khảo sát này",
        "survey.confirm_delete": "Bạn có chắc chắn muốn xóa khảo sát này?",
        "export.students_only": "Tính năng xuất PDF chỉ dành cho học sinh",
        "export.load_failed": "Không thể tải dữ liệu người dùng",
        "export.render_failed": "Không thể tạo file PDF",
    },
    "en": {
        "auth.missing_credentials": "Please enter both email and password",
        "auth.invalid_credentials": "Incorrect email or password",
        "auth.missing_secret": "Please enter the secret key",
        "auth.invalid_secret": "Incorrect secret key",
        "auth.email_taken": "Email is already registered",
        "auth.invalid_role": "Invalid role",
        "auth.too_many_attempts": "Too many failed sign-ins, try again in {retry_after} seconds",
        "auth.login_failed": "Sign-in failed",
        "auth.logout_failed": "Sign-out failed",
        "auth.editors_only": "Only administrators and class representatives may do this",
        "auth.admins_only": "Only administrators may do this",
        "auth.students_only": "Only students may do this",
        "role.admin": "Administrator",
        "role.bcs": "Class representative",
        "role.student": "Student",
        "role.unknown": "Unknown",
        "profile.load_failed": "Could not load accounts",
        "profile.save_failed": "Could not create account",
        "timetable.missing_fields": "Please fill in all fields",
        "timetable.not_found": "Timetable entry not found",
        "timetable.load_failed": "Could not load timetable",
        "timetable.save_failed": "Could not save timetable entry",
        "timetable.delete_failed": "Could not delete timetable entry",
        "timetable.confirm_delete": "Are you sure you want to delete this timetable entry?",
        "post.missing_fields": "Please fill in all fields",
        "post.not_found": "Post not found",
        "post.load_failed": "Could not load posts",
        "post.save_failed": "Could not save post",
        "post.delete_failed": "Could not delete post",
        "post.mark_read_failed": "Could not mark post as read",
        "post.confirm_delete": "Are you sure you want to delete this post?",
        "survey.missing_question": "Please enter a question",
        "survey.invalid_kind": "Invalid question type",
        "survey.too_few_options": "A multiple-choice question needs at least 2 options",
        "survey.missing_answer": "Please enter an answer",
        "survey.invalid_option": "Invalid option",
        "survey.already_responded": "You have already answered this survey",
        "survey.not_found": "Survey not found",
        "survey.load_failed": "Could not load surveys",
        "survey.save_failed": "Could not save survey",
        "survey.delete_failed": "Could not delete survey",
        "survey.submit_failed": "Could not submit answer",
        "survey.results_failed": "Could not load survey results",
        "survey.no_responses": "Nobody has answered this survey yet",
        "survey.confirm_delete": "Are you sure you want to delete this survey?",
        "export.students_only": "PDF export is only available to students",
        "export.load_failed": "Could not load your data",
        "export.render_failed": "Could not create the PDF file",
    },
}


def t(key: str, locale: str = None, **params) -> str:
    """Return the message `key` in `locale` (default: configured locale).

    Missing keys in a non-default locale fall back to the default
    catalog; a key missing everywhere is returned unchanged.
    """
    table = CATALOG.get(locale or settings.LOCALE, CATALOG[DEFAULT_LOCALE])
    text = table.get(key) or CATALOG[DEFAULT_LOCALE].get(key, key)
    return text.format(**params) if params else text


def role_label(role: str, locale: str = None) -> str:
    """Human readable label for a profile role."""
    key = f"role.{role}"
    if key not in CATALOG[DEFAULT_LOCALE]:
        key = "role.unknown"
    return t(key, locale)
