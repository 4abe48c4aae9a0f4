from types import SimpleNamespace

import pytest
from twilio.base.exceptions import TwilioRestException

from utils.errors import SmsSendError
from utils.sms import DEFAULT_MESSAGE_TEMPLATE, LogGateway, TwilioGateway, build_gateway, build_message


class FakeMessages:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return SimpleNamespace(sid="SM123")


def fake_client(error=None):
    return SimpleNamespace(messages=FakeMessages(error))


def test_build_message_contains_code_and_minutes():
    body = build_message("123456")
    assert "123456" in body
    assert "5分間" in body


def test_build_message_bad_template_falls_back():
    assert build_message("123456", template="{unknown}") == DEFAULT_MESSAGE_TEMPLATE.format(code="123456", minutes=5)


def test_twilio_gateway_sends_from_number():
    client = fake_client()
    gateway = TwilioGateway("AC1", "tok", from_number="+15005550006", client=client)
    assert gateway.send("+819012345678", "123456") == "SM123"
    call = client.messages.calls[0]
    assert call["to"] == "+819012345678"
    assert call["from_"] == "+15005550006"
    assert "123456" in call["body"]


def test_twilio_gateway_prefers_messaging_service():
    client = fake_client()
    gateway = TwilioGateway("AC1", "tok", from_number="+15005550006", messaging_service_sid="MG1", client=client)
    gateway.send("+819012345678", "123456")
    call = client.messages.calls[0]
    assert call["messaging_service_sid"] == "MG1"
    assert "from_" not in call


def test_twilio_gateway_wraps_provider_errors():
    error = TwilioRestException(400, "https://api.twilio.com", msg="bad number", code=21211)
    gateway = TwilioGateway("AC1", "tok", from_number="+15005550006", client=fake_client(error))
    with pytest.raises(SmsSendError):
        gateway.send("+819012345678", "123456")


def test_twilio_gateway_wraps_network_errors():
    gateway = TwilioGateway("AC1", "tok", from_number="+15005550006", client=fake_client(ConnectionError("down")))
    with pytest.raises(SmsSendError):
        gateway.send("+819012345678", "123456")


def test_unconfigured_twilio_gateway_refuses_to_send():
    gateway = TwilioGateway(None, None)
    assert not gateway.enabled
    with pytest.raises(SmsSendError):
        gateway.send("+819012345678", "123456")


def test_build_gateway():
    assert isinstance(build_gateway({'SMS_PROVIDER': 'log'}), LogGateway)
    assert isinstance(build_gateway({}), TwilioGateway)
    with pytest.raises(ValueError):
        build_gateway({'SMS_PROVIDER': 'carrier-pigeon'})


def test_log_gateway_does_not_log_code(caplog):
    caplog.set_level("INFO")
    message_id = LogGateway().send("+819012345678", "123456")
    assert message_id.startswith("log-")
    assert "123456" not in caplog.text
