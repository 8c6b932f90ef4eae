"""wpclone MySQL module"""
import os
import tempfile
from contextlib import contextmanager
from typing import NamedTuple, Optional

import pymysql
from pymysql import DatabaseError

from wpc.core.logging import Log
from wpc.core.shellexec import CommandExecutionError, WPCShellExec
from wpc.core.variables import WPCVar


class MySQLConnectionError(Exception):
    """Custom Exception when MySQL server Not Connected"""
    pass


class StatementExcecutionError(Exception):
    """Custom Exception when any Query Fails to execute"""
    pass


class DBCredentials(NamedTuple):
    """A MySQL login, optionally bound to a default database"""
    user: str
    password: str
    host: str = WPCVar.wpc_mysql_host
    database: Optional[str] = None

    def on(self, database):
        """Same login, different default database"""
        return self._replace(database=database)


class WPCMysql():
    """Method for MySQL connection"""

    def connect(self, creds):
        """Makes connection with MySQL server using ``creds``"""
        try:
            connection = pymysql.connect(host=creds.host,
                                         user=creds.user,
                                         password=creds.password,
                                         database=creds.database,
                                         charset='utf8mb4')
            return connection
        except DatabaseError as e:
            if e.args and e.args[0] == 1045:
                Log.debug(self, "Access denied for {0}@{1}"
                          .format(creds.user, creds.host))
            else:
                Log.debug(self, "{0}".format(e))
            raise MySQLConnectionError(str(e))
        except Exception as e:
            Log.debug(self, "[Error]Setting up database: \'" + str(e) + "\'")
            raise MySQLConnectionError(str(e))

    def execute_many(self, creds, statements, errormsg='', log=True):
        """
        Run ``statements`` in order on one connection and commit.
        An item is either a SQL string or a ``(sql, args)`` pair.
        Stops at the first failing statement; earlier statements
        stay applied. Returns the total number of affected rows.
        """
        connection = WPCMysql.connect(self, creds)
        affected = 0
        try:
            with connection.cursor() as cursor:
                for statement in statements:
                    if isinstance(statement, str):
                        sql, args = statement, None
                    else:
                        sql, args = statement
                    if log:
                        Log.debug(self, "Executing MySQL Statement: {0}"
                                  .format(sql))
                    affected += cursor.execute(sql, args)
                    connection.commit()
        except DatabaseError as e:
            Log.debug(self, "{0}".format(e))
            if errormsg:
                Log.debug(self, errormsg)
            raise StatementExcecutionError(str(e))
        finally:
            connection.close()
        return affected

    def fetch_one(self, creds, query):
        """Return the first row of ``query``"""
        connection = WPCMysql.connect(self, creds)
        try:
            with connection.cursor() as cursor:
                Log.debug(self, "Executing MySQL query: {0}".format(query))
                cursor.execute(query)
                return cursor.fetchone()
        except DatabaseError as e:
            Log.debug(self, "{0}".format(e))
            raise StatementExcecutionError(str(e))
        finally:
            connection.close()

    @staticmethod
    @contextmanager
    def defaults_file(creds):
        """
        Yield the path of a private option file holding ``creds`` for
        the mysql/mysqldump clients, removed on exit.
        """
        fd, path = tempfile.mkstemp(prefix='wpclone-', suffix='.cnf')
        try:
            with os.fdopen(fd, 'w') as f:
                f.write("[client]\n")
                f.write("user={0}\n".format(creds.user))
                f.write("password=\"{0}\"\n".format(creds.password))
                f.write("host={0}\n".format(creds.host))
            os.chmod(path, 0o600)
            yield path
        finally:
            if os.path.exists(path):
                os.remove(path)

    def dump(self, creds, database, dump_file,
             mysqldump=WPCVar.wpc_mysqldump_bin):
        """
        Export ``database`` into ``dump_file`` with mysqldump.
        Returns True when mysqldump exits 0.
        """
        with WPCMysql.defaults_file(creds) as cnf:
            cmd = [mysqldump, '--defaults-extra-file={0}'.format(cnf)]
            cmd += WPCVar.wpc_mysqldump_options
            cmd.append(database)
            try:
                with open(dump_file, 'w') as out:
                    return WPCShellExec.cmd_exec(self, cmd, stdout=out)
            except CommandExecutionError as e:
                Log.debug(self, str(e))
                return False

    def restore(self, creds, database, dump_file,
                mysql=WPCVar.wpc_mysql_bin):
        """
        Replay ``dump_file`` into ``database`` with the mysql client.
        Returns True when mysql exits 0.
        """
        with WPCMysql.defaults_file(creds) as cnf:
            cmd = [mysql, '--defaults-extra-file={0}'.format(cnf), database]
            try:
                with open(dump_file, 'r') as src:
                    return WPCShellExec.cmd_exec(self, cmd, stdin=src)
            except CommandExecutionError as e:
                Log.debug(self, str(e))
                return False
