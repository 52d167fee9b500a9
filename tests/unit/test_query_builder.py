"""Tests for the Sql builder and its terminal operations on a fake cursor."""
import datetime
import logging
import sqlite3
from dataclasses import dataclass

import pytest
from simpledb import QueryConsumedError, StatementError
from simpledb.query import Sql


class TestAppend:

    def test_fragments_join_with_single_space(self):
        sql = Sql(None).append('SELECT *').append('FROM article').append('WHERE id = ?', 1)
        assert sql.sql == 'SELECT * FROM article WHERE id = ?'
        assert sql.params == (1,)

    def test_params_keep_order(self):
        sql = Sql(None) \
            .append('UPDATE article SET title = ?, body = ?', 't', 'b') \
            .append('WHERE id = ?', 3)
        assert sql.params == ('t', 'b', 3)

    def test_no_count_validation_on_append(self):
        sql = Sql(None).append('SELECT ?')
        assert sql.params == ()


class TestAppendIn:

    @pytest.mark.parametrize('k', [1, 3, 10])
    def test_expands_marker(self, k):
        values = list(range(k))
        sql = Sql(None).append('SELECT * FROM article').append_in('WHERE id IN (?)', *values)
        assert sql.sql.count('?') == k
        assert sql.params == tuple(values)

    def test_accepts_list_argument(self):
        sql = Sql(None).append_in('id IN (?)', [3, 1, 2])
        assert sql.sql == 'id IN (?, ?, ?)'
        assert sql.params == (3, 1, 2)

    def test_zero_values_leave_fragment(self):
        sql = Sql(None).append('SELECT * FROM article').append_in('WHERE id IN (?)')
        assert sql.sql == 'SELECT * FROM article WHERE id IN (?)'
        assert sql.params == ()

    def test_fragment_needs_one_marker(self):
        with pytest.raises(StatementError):
            Sql(None).append_in('WHERE id IN (?) OR id IN (?)', 1, 2)


class TestTerminalOperations:

    def test_insert_returns_generated_key(self, fake_db):
        db, dbapi_cursor = fake_db(rowcount=1, lastrowid=7)
        key = db.gen_sql().append('INSERT INTO article (title) VALUES (?)', 't').insert()
        assert key == 7
        assert dbapi_cursor.executed == [('INSERT INTO article (title) VALUES (?)', ('t',))]
        assert dbapi_cursor.closed

    def test_insert_without_key(self, fake_db):
        db, _ = fake_db(rowcount=0)
        assert db.gen_sql().append('INSERT INTO article SELECT * FROM article WHERE 1 = 0').insert() == 0

    def test_update_and_delete_return_rowcount(self, fake_db):
        db, _ = fake_db(rowcount=3)
        assert db.gen_sql().append('UPDATE article SET title = ?', 'x').update() == 3
        assert db.gen_sql().append('DELETE FROM article').delete() == 3

    def test_unknown_rowcount_reads_as_zero(self, fake_db):
        db, _ = fake_db(rowcount=-1)
        assert db.gen_sql().append('DELETE FROM article WHERE id = ?', 99).delete() == 0

    def test_select_rows(self, fake_db):
        db, _ = fake_db(rows=[(1, 't1'), (2, 't2')], columns=['id', 'title'])
        rows = db.gen_sql().append('SELECT id, title FROM article').select_rows()
        assert rows == [{'id': 1, 'title': 't1'}, {'id': 2, 'title': 't2'}]
        assert list(rows[0]) == ['id', 'title']

    def test_select_rows_empty(self, fake_db):
        db, _ = fake_db(rows=[], columns=['id'])
        assert db.gen_sql().append('SELECT id FROM article').select_rows() == []

    def test_select_row_or_none(self, fake_db):
        db, _ = fake_db(rows=[], columns=['id'])
        assert db.gen_sql().append('SELECT id FROM article').select_row() is None

    def test_select_row_mapped(self, fake_db):
        @dataclass
        class Article:
            id: int | None = None
            title: str | None = None

        db, _ = fake_db(rows=[(1, 't1', 'extra')], columns=['id', 'title', 'unused'])
        article = db.gen_sql().append('SELECT * FROM article').select_row(Article)
        assert article == Article(id=1, title='t1')

    def test_select_long_null_is_none(self, fake_db):
        db, _ = fake_db(rows=[(None,)], columns=['n'])
        assert db.gen_sql().append('SELECT NULL').select_long() is None

    def test_select_long_zero(self, fake_db):
        db, _ = fake_db(rows=[(0,)], columns=['n'])
        assert db.gen_sql().append('SELECT 0').select_long() == 0

    def test_select_long_no_row(self, fake_db):
        db, _ = fake_db(rows=[], columns=['n'])
        assert db.gen_sql().append('SELECT id FROM article WHERE 1 = 0').select_long() is None

    def test_select_longs_null_is_zero(self, fake_db):
        db, _ = fake_db(rows=[(1,), (None,), (3,)], columns=['n'])
        assert db.gen_sql().append('SELECT n FROM t').select_longs() == [1, 0, 3]

    def test_select_boolean(self, fake_db):
        db, _ = fake_db(rows=[(1,)], columns=['b'])
        assert db.gen_sql().append('SELECT 1 = 1').select_boolean() is True

        db, _ = fake_db(rows=[(0,)], columns=['b'])
        assert db.gen_sql().append('SELECT 1 = 0').select_boolean() is False

    def test_select_string(self, fake_db):
        db, _ = fake_db(rows=[('title1',)], columns=['title'])
        assert db.gen_sql().append('SELECT title FROM article').select_string() == 'title1'

    def test_select_datetime_folds_date(self, fake_db):
        db, _ = fake_db(rows=[(datetime.date(2024, 5, 1),)], columns=['d'])
        value = db.gen_sql().append('SELECT CURRENT_DATE').select_datetime()
        assert value == datetime.datetime(2024, 5, 1)

    def test_pyformat_driver_gets_converted_sql(self, fake_db):
        db, dbapi_cursor = fake_db(drivername='mysql', rowcount=1)
        db.gen_sql().append("UPDATE article SET body = 'x%' WHERE id = ?", 1).update()
        assert dbapi_cursor.executed == [("UPDATE article SET body = 'x%%' WHERE id = %s", (1,))]

    @pytest.mark.parametrize('drivername, marker', [('mysql', '%s'), ('postgresql', '%s'), ('sqlite', '?')])
    def test_handle_options_follow_driver(self, fake_db, drivername, marker):
        db, dbapi_cursor = fake_db(drivername=drivername, rowcount=1)
        assert db.options.drivername == drivername
        db.gen_sql().append('DELETE FROM article WHERE id = ?', 1).delete()
        assert dbapi_cursor.executed == [(f'DELETE FROM article WHERE id = {marker}', (1,))]


class TestValidation:

    def test_param_count_mismatch_never_reaches_driver(self, fake_db):
        db, dbapi_cursor = fake_db()
        with pytest.raises(StatementError):
            db.gen_sql().append('SELECT * FROM article WHERE id = ? AND title = ?', 1).select_rows()
        assert dbapi_cursor.executed == []

    def test_zero_values_in_fragment_fails_at_execution(self, fake_db):
        db, dbapi_cursor = fake_db()
        with pytest.raises(StatementError):
            db.gen_sql().append('SELECT * FROM article').append_in('WHERE id IN (?)').select_rows()
        assert dbapi_cursor.executed == []

    def test_driver_error_is_translated(self, fake_db):
        error = sqlite3.OperationalError('no such table: missing')
        db, _ = fake_db(error=error)
        with pytest.raises(StatementError) as excinfo:
            db.gen_sql().append('SELECT * FROM missing').select_rows()
        assert excinfo.value.__cause__ is error
        assert 'SELECT * FROM missing' in str(excinfo.value)


class TestSingleUse:

    def test_append_after_terminal(self, fake_db):
        db, _ = fake_db(rowcount=1)
        sql = db.gen_sql().append('DELETE FROM article WHERE id = ?', 1)
        sql.delete()
        assert sql.consumed
        with pytest.raises(QueryConsumedError):
            sql.append('AND 1 = 1')
        with pytest.raises(QueryConsumedError):
            sql.append_in('AND id IN (?)', 1)

    def test_second_terminal(self, fake_db):
        db, dbapi_cursor = fake_db(rowcount=1)
        sql = db.gen_sql().append('DELETE FROM article WHERE id = ?', 1)
        sql.delete()
        with pytest.raises(QueryConsumedError):
            sql.delete()
        assert len(dbapi_cursor.executed) == 1

    def test_consumed_even_when_execution_fails(self, fake_db):
        db, _ = fake_db()
        sql = db.gen_sql().append('SELECT ?')
        with pytest.raises(StatementError):
            sql.select_rows()
        with pytest.raises(QueryConsumedError):
            sql.select_rows()


class TestDevMode:

    def test_echo_before_execution(self, fake_db, caplog):
        db, _ = fake_db(rowcount=1)
        db.set_dev_mode(True)
        with caplog.at_level(logging.INFO, logger='simpledb.sql'):
            db.gen_sql().append('UPDATE article SET title = ?', 'secret').update()
        messages = [r.getMessage() for r in caplog.records if r.name == 'simpledb.sql']
        assert messages == ['== rawSql ==\nUPDATE article SET title = ?']
        assert 'secret' not in caplog.text

    def test_no_echo_by_default(self, fake_db, caplog):
        db, _ = fake_db(rowcount=1)
        with caplog.at_level(logging.INFO, logger='simpledb.sql'):
            db.gen_sql().append('UPDATE article SET title = ?', 'x').update()
        assert not [r for r in caplog.records if r.name == 'simpledb.sql']


if __name__ == '__main__':
    __import__('pytest').main([__file__])
