import logging

from chat_client.errors import ServerSignaledError
from chat_client.observability import ChatObserver, top_choice_content
from chat_client.payload import build_payload

PAYLOAD = build_payload([{"role": "user", "content": "hello"}], {"max_tokens": 5})
RESPONSE = {
    "choices": [{"finish_reason": "stop", "index": 0, "message": {"role": "assistant", "content": "hi"}}],
    "usage": {"completion_tokens": 1, "prompt_tokens": 4, "total_tokens": 5},
}


def test_completion_succeeded_logs_usage(caplog):
    caplog.set_level(logging.INFO, logger="chat_client.observability")
    ChatObserver().completion_succeeded(PAYLOAD, RESPONSE)
    record = caplog.records[-1]
    assert record.getMessage() == "Chat 5 tokens"
    assert record.top_choice == "hi"
    assert record.token_usage == 5
    assert record.overrides == {"max_tokens": 5}
    assert record.messages == [{"role": "user", "content": "hello"}]


def test_completion_failed_logs_error(caplog):
    ChatObserver().completion_failed(PAYLOAD, ServerSignaledError("boom"))
    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert record.getMessage() == "Completion error: ServerSignaledError boom"


def test_custom_logger(caplog):
    logger = logging.getLogger("tests.chat")
    caplog.set_level(logging.INFO, logger="tests.chat")
    ChatObserver(logger).client_created("http://chat.local")
    assert caplog.records[-1].name == "tests.chat"


def test_top_choice_content():
    assert top_choice_content(RESPONSE) == "hi"
    assert top_choice_content({"choices": []}) == ""
    assert top_choice_content({"choices": [{"message": {"content": None}}]}) == ""
