"""Run a quick end-to-end check against the app in-process.

Signs in with the admin secret key, reads today's timetable and the
post list, and prints the status of each call.
"""

import sys
import os

# Ensure backend folder is on sys.path so `schoolhub` package can be imported
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi.testclient import TestClient
from schoolhub.config import settings
from schoolhub.main import app


def main():
    client = TestClient(app)
    resp = client.get('/health')
    print('health:', resp.status_code, resp.json())
    login = client.post('/auth/staff-login', json={'secret_key': settings.ADMIN_SECRET_KEY})
    print('staff-login:', login.status_code)
    if login.status_code != 200:
        print('CONTENT:', login.text)
        return 1
    headers = {'Authorization': f"Bearer {login.json()['access_token']}"}
    for path in ('/auth/me', '/timetable/today', '/posts', '/surveys'):
        r = client.get(path, headers=headers)
        print(f'{path}:', r.status_code, r.json())
    return 0


if __name__ == '__main__':
    sys.exit(main())
