"""
Tests for reading the mailbox identity list
"""

import pytest

from oof_manager.errors import InputEmpty, InputNotFound, InputSchemaInvalid
from oof_manager.input_loader import load_identities


def write(tmp_path, text, name="users.csv"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_one_identity_per_row_in_file_order(tmp_path):
    path = write(tmp_path, "UserPrincipalName,Department\nc@x.com,IT\na@x.com,HR\nb@x.com,IT\n")
    assert load_identities(path) == ["c@x.com", "a@x.com", "b@x.com"]


def test_email_column_used_when_no_upn(tmp_path):
    path = write(tmp_path, "Name,Email\nAnn,ann@x.com\nBob,bob@x.com\n")
    assert load_identities(path) == ["ann@x.com", "bob@x.com"]


def test_upn_wins_over_email(tmp_path):
    path = write(tmp_path, "Email,UserPrincipalName\nmail@x.com,upn@x.onmicrosoft.com\n")
    assert load_identities(path) == ["upn@x.onmicrosoft.com"]


def test_identities_pass_through_untouched(tmp_path):
    path = write(tmp_path, 'UserPrincipalName\n" a@x.com "\na@x.com\na@x.com\nNA\n')
    assert load_identities(path) == [" a@x.com ", "a@x.com", "a@x.com", "NA"]


def test_custom_delimiter(tmp_path):
    path = write(tmp_path, "Email;Name\na@x.com;Ann\n", name="users.txt")
    assert load_identities(path, delimiter=";") == ["a@x.com"]


def test_missing_file(tmp_path):
    with pytest.raises(InputNotFound):
        load_identities(tmp_path / "nope.csv")


def test_directory_is_not_a_file(tmp_path):
    with pytest.raises(InputNotFound):
        load_identities(tmp_path)


def test_completely_empty_file(tmp_path):
    with pytest.raises(InputEmpty):
        load_identities(write(tmp_path, ""))


def test_header_only_file(tmp_path):
    with pytest.raises(InputEmpty):
        load_identities(write(tmp_path, "UserPrincipalName\n"))


def test_no_identity_column(tmp_path):
    path = write(tmp_path, "Name,Mail\nAnn,ann@x.com\n")
    with pytest.raises(InputSchemaInvalid) as exc:
        load_identities(path)
    assert "UserPrincipalName" in str(exc.value)


def test_identity_column_is_case_sensitive(tmp_path):
    path = write(tmp_path, "email\nann@x.com\n")
    with pytest.raises(InputSchemaInvalid):
        load_identities(path)


def test_file_that_is_not_utf8(tmp_path):
    path = tmp_path / "users.csv"
    path.write_bytes(b"UserPrincipalName\n\xff\xfeann@x.com\n")
    with pytest.raises(InputSchemaInvalid):
        load_identities(path)
