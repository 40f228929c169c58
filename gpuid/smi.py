"""Parsing of the ``nvidia-smi -q -x`` XML report."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from .smi_sections import (
    ApplicationsClocks,
    Bar1MemoryUsage,
    Capabilities,
    CcProtectedMemoryUsage,
    ClockPolicy,
    Clocks,
    ClocksEventReasons,
    DefaultApplicationsClocks,
    DeferredClocks,
    DramEncryptionMode,
    DriverModel,
    EccErrors,
    EccMode,
    EncoderStats,
    Fabric,
    FbcStats,
    FbMemoryUsage,
    Ibmnpu,
    InforomBbxFlush,
    InforomVersion,
    MaxClocks,
    MaxCustomerBoostClocks,
    MemoryPowerReadings,
    MigMode,
    ModulePowerReadings,
    OperationMode,
    Pci,
    Platforminfo,
    PowerProfiles,
    PowerReadings,
    RemappedRows,
    ResetStatus,
    RetiredPages,
    SupportedClocks,
    SupportedGpuTargetTemp,
    Temperature,
    Utilization,
    VirtualizationMode,
    Voltage,
    XmlSection,
)


class SMIParseError(ValueError):
    """Raised when the nvidia-smi report cannot be parsed."""


def _t(json_key, xml=None):
    return field(default="", metadata={"json": json_key, "xml": xml})


def _s(section, json_key, xml=None):
    return field(
        default_factory=section,
        metadata={"json": json_key, "xml": xml, "section": section},
    )


@dataclass
class GPU(XmlSection):
    """One GPU entry of the report."""

    product_name: str = _t("productName")
    product_brand: str = _t("productBrand")
    product_architecture: str = _t("productArchitecture")
    display_mode: str = _t("displayMode")
    display_active: str = _t("displayActive")
    persistence_mode: str = _t("persistenceMode")
    addressing_mode: str = _t("addressingMode")
    mig_mode: MigMode = _s(MigMode, "migMode")
    mig_devices: str = _t("migDevices")
    accounting_mode: str = _t("accountingMode")
    accounting_mode_buffer_size: str = _t("accountingModeBufferSize")
    driver_model: DriverModel = _s(DriverModel, "driverModel")
    serial: str = _t("serial")
    uuid: str = _t("uuid")
    minor_number: str = _t("minorNumber")
    vbios_version: str = _t("vbiosVersion")
    multigpu_board: str = _t("multiGPUBoard")
    board_id: str = _t("boardId")
    board_part_number: str = _t("boardPartNumber")
    gpu_part_number: str = _t("gpuPartNumber")
    gpu_fru_part_number: str = _t("gpuFRUPartNumber")
    platform_info: Platforminfo = _s(Platforminfo, "platformInfo", xml="platformInfo")
    inforom_version: InforomVersion = _s(InforomVersion, "inforomVersion")
    inforom_bbx_flush: InforomBbxFlush = _s(InforomBbxFlush, "inforomBBXFlush")
    gpu_operation_mode: OperationMode = _s(OperationMode, "gpuOperationMode")
    c2c_mode: str = _t("c2cMode")
    gpu_virtualization_mode: VirtualizationMode = _s(
        VirtualizationMode, "gpuVirtualizationMode"
    )
    gpu_reset_status: ResetStatus = _s(ResetStatus, "gpuResetStatus")
    gpu_recovery_action: str = _t("gpuRecoveryAction")
    gsp_firmware_version: str = _t("gspFirmwareVersion")
    ibmnpu: Ibmnpu = _s(Ibmnpu, "ibmnpu")
    pci: Pci = _s(Pci, "pci")
    fan_speed: str = _t("fanSpeed")
    performance_state: str = _t("performanceState")
    clocks_event_reasons: ClocksEventReasons = _s(ClocksEventReasons, "clocksEventReasons")
    sparse_operation_mode: str = _t("sparseOperationMode")
    fb_memory_usage: FbMemoryUsage = _s(FbMemoryUsage, "fbMemoryUsage")
    bar1_memory_usage: Bar1MemoryUsage = _s(Bar1MemoryUsage, "bar1MemoryUsage")
    cc_protected_memory_usage: CcProtectedMemoryUsage = _s(
        CcProtectedMemoryUsage, "ccProtectedMemoryUsage"
    )
    compute_mode: str = _t("computeMode")
    utilization: Utilization = _s(Utilization, "utilization")
    encoder_stats: EncoderStats = _s(EncoderStats, "encoderStats")
    fbc_stats: FbcStats = _s(FbcStats, "fbcStats")
    dram_encryption_mode: DramEncryptionMode = _s(DramEncryptionMode, "dramEncryptionMode")
    ecc_mode: EccMode = _s(EccMode, "eccMode")
    ecc_errors: EccErrors = _s(EccErrors, "eccErrors")
    retired_pages: RetiredPages = _s(RetiredPages, "retiredPages")
    remapped_rows: RemappedRows = _s(RemappedRows, "remappedRows")
    temperature: Temperature = _s(Temperature, "temperature")
    supported_gpu_target_temp: SupportedGpuTargetTemp = _s(
        SupportedGpuTargetTemp, "supportedGpuTargetTemp"
    )
    gpu_power_readings: PowerReadings = _s(PowerReadings, "gpuPowerReadings")
    gpu_memory_power_readings: MemoryPowerReadings = _s(
        MemoryPowerReadings, "gpuMemoryPowerReadings"
    )
    module_power_readings: ModulePowerReadings = _s(ModulePowerReadings, "modulePowerReadings")
    power_smoothing: str = _t("powerSmoothing")
    power_profiles: PowerProfiles = _s(PowerProfiles, "powerProfiles")
    clocks: Clocks = _s(Clocks, "clocks")
    applications_clocks: ApplicationsClocks = _s(ApplicationsClocks, "applicationsClocks")
    default_applications_clocks: DefaultApplicationsClocks = _s(
        DefaultApplicationsClocks, "defaultApplicationsClocks"
    )
    deferred_clocks: DeferredClocks = _s(DeferredClocks, "deferredClocks")
    max_clocks: MaxClocks = _s(MaxClocks, "maxClocks")
    max_customer_boost_clocks: MaxCustomerBoostClocks = _s(
        MaxCustomerBoostClocks, "maxCustomerBoostClocks"
    )
    clock_policy: ClockPolicy = _s(ClockPolicy, "clockPolicy")
    voltage: Voltage = _s(Voltage, "voltage")
    fabric: Fabric = _s(Fabric, "fabric")
    supported_clocks: SupportedClocks = _s(SupportedClocks, "supportedClocks")
    processes: str = _t("processes")
    accounted_processes: str = _t("accountedProcesses")
    capabilities: Capabilities = _s(Capabilities, "capabilities")


@dataclass
class NVSMIDevice(XmlSection):
    """The whole nvidia-smi report."""

    timestamp: str = _t("timestamp")
    driver_version: str = _t("driverVersion")
    cuda_version: str = _t("cudaVersion")
    attached_gpus: str = _t("attachedGPUs")
    gpus: list = field(
        default_factory=list,
        metadata={"json": "gpu", "xml": "gpu", "section": GPU, "many": True},
    )


def parse_smi_device(data):
    """Parse nvidia-smi XML (bytes or str) into an NVSMIDevice."""
    text = data.decode("utf-8", "replace") if isinstance(data, (bytes, bytearray)) else data
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise SMIParseError(f"failed to unmarshal NVIDIA SMI XML: {exc} - {text}") from exc
    return NVSMIDevice.from_element(root)