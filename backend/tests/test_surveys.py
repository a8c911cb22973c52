from schoolhub import models
from schoolhub.messages import t


def _create_survey(client, headers, question='Em muốn đi đâu?', kind='multiple_choice', options=None):
    if options is None and kind == 'multiple_choice':
        options = ['Đà Lạt', 'Vũng Tàu', '', '  ']
    r = client.post('/surveys', json={'question': question, 'kind': kind, 'options': options or []}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_multiple_choice_needs_two_options_before_any_store_call(client, admin_headers, monkeypatch):
    def must_not_be_called(self, survey):
        raise AssertionError("store called for an invalid survey")

    monkeypatch.setattr("schoolhub.repositories.SurveyRepository.create", must_not_be_called)
    for options in ([], ['Một'], ['Một', '', '   ']):
        r = client.post('/surveys', json={'question': 'Chọn?', 'kind': 'multiple_choice', 'options': options}, headers=admin_headers)
        assert r.status_code == 400
        assert r.json()['detail'] == t('survey.too_few_options')


def test_question_and_kind_are_validated(client, admin_headers):
    r = client.post('/surveys', json={'question': ' ', 'kind': 'text'}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()['detail'] == t('survey.missing_question')
    r = client.post('/surveys', json={'question': 'q', 'kind': 'rating'}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()['detail'] == t('survey.invalid_kind')


def test_options_are_trimmed_and_text_surveys_store_none(client, admin_headers):
    mc = _create_survey(client, admin_headers, options=[' Đà Lạt ', '', 'Vũng Tàu'])
    assert mc['options'] == ['Đà Lạt', 'Vũng Tàu']
    text = _create_survey(client, admin_headers, question='Góp ý?', kind='text', options=['ignored'])
    assert text['options'] is None

    updated = client.put(f"/surveys/{mc['id']}", json={'question': 'Đổi sang tự luận', 'kind': 'text', 'options': ['a', 'b']}, headers=admin_headers)
    assert updated.status_code == 200
    assert (updated.json()['kind'], updated.json()['options']) == ('text', None)


def test_second_response_is_rejected_and_not_stored(client, admin_headers, student_headers, count_rows):
    survey = _create_survey(client, admin_headers)
    first = client.post(f"/surveys/{survey['id']}/responses", json={'answer': 'Đà Lạt'}, headers=student_headers)
    assert first.status_code == 201
    second = client.post(f"/surveys/{survey['id']}/responses", json={'answer': 'Vũng Tàu'}, headers=student_headers)
    assert second.status_code == 409
    assert second.json()['detail'] == t('survey.already_responded')

    me = client.get('/auth/me', headers=student_headers).json()
    assert count_rows(models.SurveyResponse, survey_id=survey['id'], user_id=me['id']) == 1
    listed = client.get('/surveys', headers=student_headers).json()
    assert (listed[0]['has_responded'], listed[0]['user_response']) == (True, 'Đà Lạt')


def test_response_validation(client, admin_headers, student_headers):
    survey = _create_survey(client, admin_headers)
    r = client.post(f"/surveys/{survey['id']}/responses", json={'answer': ''}, headers=student_headers)
    assert r.status_code == 400
    assert r.json()['detail'] == t('survey.missing_answer')
    r = client.post(f"/surveys/{survey['id']}/responses", json={'answer': 'Hà Nội'}, headers=student_headers)
    assert r.status_code == 400
    assert r.json()['detail'] == t('survey.invalid_option')
    r = client.post('/surveys/999/responses', json={'answer': 'x'}, headers=student_headers)
    assert r.status_code == 404


def test_only_students_respond(client, admin_headers, bcs_headers):
    survey = _create_survey(client, admin_headers, kind='text')
    r = client.post(f"/surveys/{survey['id']}/responses", json={'answer': 'x'}, headers=bcs_headers)
    assert r.status_code == 403


def test_results_group_by_answer_in_first_seen_order(client, admin_headers, make_student):
    survey = _create_survey(client, admin_headers, options=['Đà Lạt', 'Vũng Tàu', 'Cần Thơ'])
    answers = ['Vũng Tàu', 'Đà Lạt', 'Vũng Tàu', 'Vũng Tàu']
    for i, answer in enumerate(answers):
        headers = make_student(email=f's{i}@school.vn')
        assert client.post(f"/surveys/{survey['id']}/responses", json={'answer': answer}, headers=headers).status_code == 201

    body = client.get(f"/surveys/{survey['id']}/results", headers=admin_headers).json()
    assert body['total'] == len(answers)
    assert [row['answer'] for row in body['results']] == ['Vũng Tàu', 'Đà Lạt']
    assert [row['count'] for row in body['results']] == [3, 1]
    assert sum(row['count'] for row in body['results']) == len(answers)
    assert [row['percentage'] for row in body['results']] == [75.0, 25.0]
    assert body['message'] is None


def test_results_without_responses_show_placeholder(client, bcs_headers):
    survey = _create_survey(client, bcs_headers, kind='text')
    body = client.get(f"/surveys/{survey['id']}/results", headers=bcs_headers).json()
    assert body['total'] == 0
    assert body['results'] == []
    assert body['message'] == t('survey.no_responses')


def test_results_are_for_editors(client, admin_headers, student_headers):
    survey = _create_survey(client, admin_headers)
    assert client.get(f"/surveys/{survey['id']}/results", headers=student_headers).status_code == 403


def test_delete_survey_drops_responses(client, admin_headers, student_headers, count_rows):
    survey = _create_survey(client, admin_headers, kind='text')
    client.post(f"/surveys/{survey['id']}/responses", json={'answer': 'Ý kiến'}, headers=student_headers)
    r = client.delete(f"/surveys/{survey['id']}", headers=admin_headers)
    assert r.status_code == 400
    assert r.json()['detail'] == t('survey.confirm_delete')
    assert client.delete(f"/surveys/{survey['id']}", params={'confirm': 'true'}, headers=admin_headers).status_code == 200
    me = client.get('/auth/me', headers=student_headers).json()
    assert count_rows(models.SurveyResponse, survey_id=survey['id'], user_id=me['id']) == 0
    assert client.get('/surveys', headers=student_headers).json() == []


def test_list_newest_first(client, admin_headers):
    _create_survey(client, admin_headers, question='Thứ nhất', kind='text')
    _create_survey(client, admin_headers, question='Thứ hai', kind='text')
    listed = client.get('/surveys', headers=admin_headers).json()
    assert [s['question'] for s in listed] == ['Thứ hai', 'Thứ nhất']
    assert listed[0]['has_responded'] is None
