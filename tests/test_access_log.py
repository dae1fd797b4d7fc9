import io
import threading
from http import HTTPStatus

from static_server.access_log import AccessLogger


def test_format(access_logger, access_stream):
    access_logger.log("10.0.0.7", "Mon, 19 Oct 2026 10:00:00 GMT", "GET", HTTPStatus.NOT_FOUND,
                      "curl/7.61.1", "/favicon.ico")

    assert access_stream.getvalue() == (
        '10.0.0.7 [Mon, 19 Oct 2026 10:00:00 GMT] "GET" 404 Not Found curl/7.61.1 /favicon.ico\n'
    )


def test_plain_status_string(access_logger, access_stream):
    access_logger.log("::1", "date", "POST", "501 Not Implemented", "-", "/")
    assert access_stream.getvalue() == '::1 [date] "POST" 501 Not Implemented - /\n'


def test_concurrent_lines_stay_whole(access_logger, access_stream):
    def worker(n):
        for i in range(50):
            access_logger.log(f"10.0.0.{n}", "date", "GET", HTTPStatus.OK, "agent", f"/{n}/{i}")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    lines = access_stream.getvalue().splitlines()
    assert len(lines) == 400
    for line in lines:
        ip, rest = line.split(" ", 1)
        n = ip.rsplit(".", 1)[1]
        assert rest.startswith('[date] "GET" 200 OK agent /' + n + "/")


def test_closed_stream_does_not_raise(monkeypatch):
    stream = io.StringIO()
    logger = AccessLogger.to_stream(stream, name="test.access.closed")
    stream.close()
    monkeypatch.setattr("logging.raiseExceptions", False)

    logger.log("127.0.0.1", "date", "GET", HTTPStatus.OK, "ua", "/")


def test_default_stream_is_current_stdout(monkeypatch):
    stream = io.StringIO()
    monkeypatch.setattr("sys.stdout", stream)

    logger = AccessLogger.to_stream(name="test.access.stdout")
    logger.log("127.0.0.1", "date", "GET", HTTPStatus.OK, "ua", "/")

    assert stream.getvalue() == '127.0.0.1 [date] "GET" 200 OK ua /\n'
