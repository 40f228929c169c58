import pytest

from gpuid.gpu import SMI_COMMAND, get_serial_numbers, unique_serials
from gpuid.kube import ExecError, KubeError, Pod
from gpuid.smi import SMIParseError, parse_smi_device

XML = (
    "<nvidia_smi_log>"
    "<gpu><serial>SN-A</serial></gpu>"
    "<gpu><serial>SN-B</serial></gpu>"
    "<gpu><serial>SN-A</serial></gpu>"
    "</nvidia_smi_log>"
)

POD = Pod(name="p", namespace="ns")


class FakeClient:
    def __init__(self, output=None, error=None):
        self.output = output
        self.error = error
        self.calls = []

    def exec_command(self, pod, container, command, timeout=None):
        self.calls.append((pod, container, command, timeout))
        if self.error:
            raise self.error
        return self.output


def test_unique_serials_removes_duplicates():
    assert unique_serials(parse_smi_device(XML)) == ["SN-A", "SN-B"]


def test_get_serial_numbers_runs_smi():
    client = FakeClient(output=XML)
    serials = get_serial_numbers(client, POD, "c", 5)
    assert sorted(serials) == ["SN-A", "SN-B"]
    assert client.calls == [(POD, "c", list(SMI_COMMAND), 5)]


def test_exec_failure_is_wrapped():
    client = FakeClient(error=ExecError("command stderr: nope"))
    with pytest.raises(KubeError, match="failed to execute command in pod ns/p"):
        get_serial_numbers(client, POD, "c")


def test_bad_output_is_parse_error():
    with pytest.raises(SMIParseError, match="failed to parse nvidia-smi output"):
        get_serial_numbers(FakeClient(output="not xml"), POD, "c")


def test_no_gpus_gives_empty_list():
    assert get_serial_numbers(FakeClient(output="<nvidia_smi_log/>"), POD, "c") == []