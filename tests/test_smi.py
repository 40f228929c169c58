import pytest

from gpuid.smi import GPU, NVSMIDevice, SMIParseError, parse_smi_device


def _gpu_xml(index):
    return f"""
    <gpu id="0000000{index}:00:00.0">
        <product_name>Example GPU</product_name>
        <serial>SERIAL-EXAMPLE-{index}</serial>
        <uuid>GPU-example-uuid-{index}</uuid>
        <platformInfo><slot_number>{index}</slot_number></platformInfo>
        <fb_memory_usage><total>81559 MiB</total><used>0 MiB</used></fb_memory_usage>
        <fabric><cliqueId>clique-{index}</cliqueId><health><bandwidth>Full</bandwidth></health></fabric>
        <unknown_tag>ignored</unknown_tag>
    </gpu>"""


SAMPLE = (
    '<?xml version="1.0" ?>\n<nvidia_smi_log>'
    "<timestamp>Mon Jan  1 00:00:00 2024</timestamp>"
    "<driver_version>550.00</driver_version>"
    "<cuda_version>12.4</cuda_version>"
    "<attached_gpus>8</attached_gpus>"
    + "".join(_gpu_xml(i) for i in range(8))
    + "</nvidia_smi_log>"
)


def test_parse_nvidia_smi_log():
    d = parse_smi_device(SAMPLE.encode())
    assert d.timestamp
    assert d.driver_version == "550.00"
    assert d.cuda_version == "12.4"
    assert len(d.gpus) == 8
    for gpu in d.gpus:
        assert gpu.serial
        assert gpu.product_name
        assert gpu.uuid
        assert gpu.fb_memory_usage.total


def test_nested_and_renamed_fields():
    d = parse_smi_device(SAMPLE)
    assert d.attached_gpus == "8"
    assert d.gpus[3].serial == "SERIAL-EXAMPLE-3"
    assert d.gpus[3].platform_info.slot_number == "3"
    assert d.gpus[2].fabric.clique_id == "clique-2"
    assert d.gpus[0].fabric.health.bandwidth == "Full"


def test_missing_fields_default_empty():
    d = parse_smi_device("<nvidia_smi_log><gpu><serial>X</serial></gpu></nvidia_smi_log>")
    assert d.driver_version == ""
    assert d.gpus[0].uuid == ""
    assert d.gpus[0].pci.pci_gpu_link_info.pcie_gen.max_link_gen == ""


def test_to_dict_uses_json_names():
    d = parse_smi_device(SAMPLE)
    out = d.to_dict()
    assert out["driverVersion"] == "550.00"
    assert out["gpu"][1]["serial"] == "SERIAL-EXAMPLE-1"
    assert out["gpu"][1]["fbMemoryUsage"]["total"] == "81559 MiB"


def test_empty_device_has_no_gpus():
    assert NVSMIDevice().gpus == []
    assert GPU().serial == ""


@pytest.mark.parametrize("bad", [b"", b"<not-closed>", "garbage"])
def test_invalid_xml_raises(bad):
    with pytest.raises(SMIParseError, match="failed to unmarshal NVIDIA SMI XML"):
        parse_smi_device(bad)