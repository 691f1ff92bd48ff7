"""Mocked HTTP helpers shared by the unit tests."""

from unittest.mock import Mock

import requests


def make_response(status_code=200, json_data=None, content=b"", headers=None):
    """Build a mocked requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.json.return_value = json_data if json_data is not None else {}
    response.content = content
    response.headers = headers or {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    else:
        response.raise_for_status.return_value = None
    return response


def task_payload(status, url=None, code=None, message=None):
    """Build a DashScope task status payload."""
    output = {"task_id": "task-123", "task_status": status}
    if url:
        output["results"] = [{"url": url}]
    if code:
        output["code"] = code
    if message:
        output["message"] = message
    return {"output": output}


class FakeDashScope:
    """Mocked requests session emulating the DashScope endpoints.

    Queued submit and status responses are consumed in order; the last one
    is repeated once the queue is down to a single entry. Exceptions in the
    queues are raised instead of returned.
    """

    IMAGE_URL = "https://dashscope-result.example.com/image.png"

    def __init__(self, image_bytes):
        self.submit_responses = [make_response(json_data={"output": {"task_id": "task-123"}})]
        self.status_responses = [make_response(json_data=task_payload("SUCCEEDED", url=self.IMAGE_URL))]
        self.download_response = make_response(
            content=image_bytes, headers={"content-type": "image/png"}
        )
        self.submitted_bodies = []
        self.session = Mock()
        self.session.post.side_effect = self._post
        self.session.get.side_effect = self._get

    @staticmethod
    def _next(queue):
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def _post(self, url, json=None, headers=None, timeout=None):
        self.submitted_bodies.append(json)
        return self._next(self.submit_responses)

    def _get(self, url, headers=None, timeout=None):
        if "/tasks/" in url:
            return self._next(self.status_responses)
        if isinstance(self.download_response, Exception):
            raise self.download_response
        return self.download_response

    def queue_statuses(self, *payloads):
        self.status_responses = [
            p if isinstance(p, Exception) else make_response(json_data=p) for p in payloads
        ]

    @property
    def call_count(self):
        return self.session.post.call_count + self.session.get.call_count

    @property
    def submitted_seeds(self):
        return [body["parameters"]["seed"] for body in self.submitted_bodies]
