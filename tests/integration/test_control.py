"""
Integration tests for the module-level control API.
"""

import socket

from pocketserve.server import ServerStatus, StartResult, StopResult


class TestControlAPI:
    """Tests for pocketserve.control."""

    def test_start_stop_cycle(self, fresh_control, doc_root, make_client):
        result = fresh_control.start(0, str(doc_root))

        assert result.success
        assert result.url.startswith("http://0.0.0.0:")
        assert fresh_control.is_running()

        port = fresh_control.get_server().port
        assert result.url == f"http://0.0.0.0:{port}"
        assert make_client(port).get("/").status == 200

        assert fresh_control.stop().success
        assert not fresh_control.is_running()

    def test_requested_port_in_url(self, fresh_control, doc_root, free_port):
        result = fresh_control.start(free_port, str(doc_root))

        assert result.as_dict() == {"success": True, "url": f"http://0.0.0.0:{free_port}"}

    def test_start_while_running(self, fresh_control, doc_root, make_client):
        first = fresh_control.start(0, str(doc_root))
        second = fresh_control.start(0, str(doc_root))

        assert first.success
        assert second.as_dict() == {"success": False, "error": "Server is already running"}
        port = fresh_control.get_server().port
        assert make_client(port).get("/index.html").status == 200

    def test_stop_when_stopped(self, fresh_control):
        assert fresh_control.stop().as_dict() == {"success": True}
        assert fresh_control.stop().success

    def test_is_running_before_first_use(self, fresh_control):
        assert fresh_control.is_running() is False

    def test_bind_failure(self, fresh_control, doc_root):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("0.0.0.0", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            result = fresh_control.start(port, str(doc_root))

        assert result.success is False
        assert result.error
        assert "url" not in result.as_dict()
        assert not fresh_control.is_running()

    def test_non_integer_port_leaves_server_stopped(self, fresh_control, doc_root, make_client):
        result = fresh_control.start("8080", str(doc_root))

        assert result.success is False
        assert "port" in result.error
        assert fresh_control.get_server().status is ServerStatus.STOPPED

        assert fresh_control.start(0, str(doc_root)).success
        assert make_client(fresh_control.get_server().port).get("/").status == 200

    def test_worker_start_failure_leaves_server_stopped(self, fresh_control, doc_root, monkeypatch):
        def refuse(pool):
            raise RuntimeError("can't start new thread")

        monkeypatch.setattr("pocketserve.server.ThreadPool.start", refuse)

        result = fresh_control.start(0, str(doc_root))

        assert result == StartResult(success=False, error="can't start new thread")
        assert not fresh_control.is_running()
        assert fresh_control.get_server().status is ServerStatus.STOPPED
        assert fresh_control.stop() == StopResult(success=True)

        monkeypatch.undo()
        assert fresh_control.start(0, str(doc_root)).success
        assert fresh_control.is_running()

    def test_missing_document_root(self, fresh_control, tmp_path):
        missing = tmp_path / "not-there"

        result = fresh_control.start(0, str(missing))

        assert result.as_dict() == {"success": False, "error": f"Document root does not exist: {missing}"}
        assert not fresh_control.is_running()

    def test_same_instance(self, fresh_control):
        assert fresh_control.get_server() is fresh_control.get_server()
