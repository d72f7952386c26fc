from datetime import datetime

import pytest
from werkzeug.datastructures import FileStorage, MultiDict

from vimarsha.exceptions import ValidationError, VimarshaError
from vimarsha.messages import ErrorMessages
from vimarsha.utils.helpers import (
    format_datetime,
    get_status_badge_class,
    paginate,
    parse_error_message,
    uploaded_image,
)


def test_format_datetime():
    assert format_datetime(datetime(2024, 5, 10, 8, 30)) == '2024-05-10 08:30'
    assert format_datetime('2024-05-10T08:30:00Z') == '2024-05-10 08:30'
    assert format_datetime('last week') == 'last week'
    assert format_datetime(None) == ''


@pytest.mark.parametrize("status, badge", [
    ('Installed', 'success'),
    ('pending', 'warning'),
    ('InProgress', 'info'),
    (None, 'secondary'),
])
def test_status_badge(status, badge):
    assert get_status_badge_class(status) == badge


def test_paginate():
    items = list(range(7))
    assert paginate(items, 1, 3) == ([0, 1, 2], 1, 3)
    assert paginate(items, 3, 3) == ([6], 3, 3)
    assert paginate(items, 99, 3) == ([6], 3, 3)
    assert paginate([], 0, 3) == ([], 1, 1)


def test_parse_error_message():
    assert parse_error_message(VimarshaError('Broken')) == 'Broken'
    assert parse_error_message({'error': 'Nope'}) == 'Nope'
    assert parse_error_message(ValueError('x')) == ErrorMessages.UNEXPECTED


def test_uploaded_image():
    allowed = {'png', 'jpg'}
    photo = FileStorage(stream=None, filename='site.JPG')

    assert uploaded_image(MultiDict(), 'photo', allowed) is None
    assert uploaded_image(MultiDict({'photo': FileStorage(filename='')}), 'photo', allowed) is None
    assert uploaded_image(MultiDict({'photo': photo}), 'photo', allowed) is photo.stream
    with pytest.raises(ValidationError):
        uploaded_image(MultiDict({'photo': FileStorage(filename='notes.txt')}), 'photo', allowed)
