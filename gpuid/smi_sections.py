"""Nested sections of the nvidia-smi XML report."""

from __future__ import annotations

from dataclasses import dataclass, field, fields


def _text(json_key, xml=None):
    return field(default="", metadata={"json": json_key, "xml": xml})


def _section(section, json_key, xml=None):
    return field(
        default_factory=section,
        metadata={"json": json_key, "xml": xml, "section": section},
    )


def _local_name(tag):
    return tag.rsplit("}", 1)[-1]


def _char_data(element):
    return (element.text or "") + "".join(child.tail or "" for child in element)


def _to_plain(value):
    if isinstance(value, XmlSection):
        return value.to_dict()
    if isinstance(value, list):
        return [_to_plain(v) for v in value]
    return value


class XmlSection:
    """Base for dataclasses filled from XML elements.

    Field metadata keys: ``xml`` (element tag, defaults to the field name),
    ``json`` (key in ``to_dict``), ``section`` (nested XmlSection class) and
    ``many`` (collect every matching element into a list).
    """

    @classmethod
    def from_element(cls, element):
        """Build an instance from an ElementTree element; unknown tags are ignored."""
        by_tag = {f.metadata.get("xml") or f.name: f for f in fields(cls)}
        values = {}
        for child in element:
            if not isinstance(child.tag, str):
                continue
            f = by_tag.get(_local_name(child.tag))
            if f is None:
                continue
            section = f.metadata.get("section")
            value = _char_data(child) if section is None else section.from_element(child)
            if f.metadata.get("many"):
                values.setdefault(f.name, []).append(value)
            else:
                values[f.name] = value
        return cls(**values)

    def to_dict(self):
        """Return the section as a dict keyed by JSON names."""
        return {
            f.metadata.get("json") or f.name: _to_plain(getattr(self, f.name))
            for f in fields(self)
        }


@dataclass
class MigMode(XmlSection):
    current_mig: str = _text("currentMig")
    pending_mig: str = _text("pendingMig")


@dataclass
class DriverModel(XmlSection):
    current_dm: str = _text("currentDm")
    pending_dm: str = _text("pendingDm")


@dataclass
class Platforminfo(XmlSection):
    chassis_serial_number: str = _text("chassisSerialNumber")
    slot_number: str = _text("slotNumber")
    tray_index: str = _text("trayIndex")
    host_id: str = _text("hostId")
    peer_type: str = _text("peerType")
    module_id: str = _text("moduleId")


@dataclass
class InforomVersion(XmlSection):
    img_version: str = _text("imgVersion")
    oem_object: str = _text("oemObject")
    ecc_object: str = _text("eccObject")
    pwr_object: str = _text("pwrObject")


@dataclass
class InforomBbxFlush(XmlSection):
    latest_timestamp: str = _text("latestTimestamp")
    latest_duration: str = _text("latestDuration")


@dataclass
class OperationMode(XmlSection):
    current_gom: str = _text("currentGom")
    pending_gom: str = _text("pendingGom")


@dataclass
class VirtualizationMode(XmlSection):
    virtualization_mode: str = _text("virtualizationMode")
    host_vgpu_mode: str = _text("hostVGPUMode")
    vgpu_heterogeneous_mode: str = _text("vgpuHeterogeneousMode")


@dataclass
class ResetStatus(XmlSection):
    reset_required: str = _text("resetRequired")
    drain_and_reset_recommended: str = _text("drainAndResetRecommended")


@dataclass
class Ibmnpu(XmlSection):
    relaxed_ordering_mode: str = _text("relaxedOrderingMode")


@dataclass
class PcieGen(XmlSection):
    max_link_gen: str = _text("maxLinkGen")
    current_link_gen: str = _text("currentLinkGen")
    device_current_link_gen: str = _text("deviceCurrentLinkGen")
    max_device_link_gen: str = _text("maxDeviceLinkGen")
    max_host_link_gen: str = _text("maxHostLinkGen")


@dataclass
class LinkWidths(XmlSection):
    max_link_width: str = _text("maxLinkWidth")
    current_link_width: str = _text("currentLinkWidth")


@dataclass
class PciGpuLinkInfo(XmlSection):
    pcie_gen: PcieGen = _section(PcieGen, "pcieGen")
    link_widths: LinkWidths = _section(LinkWidths, "linkWidths")


@dataclass
class PciBridgeChip(XmlSection):
    bridge_chip_type: str = _text("bridgeChipType")
    bridge_chip_fw: str = _text("bridgeChipFw")


@dataclass
class Pci(XmlSection):
    pci_bus: str = _text("pciBus")
    pci_device: str = _text("pciDevice")
    pci_domain: str = _text("pciDomain")
    pci_base_class: str = _text("pciBaseClass")
    pci_sub_class: str = _text("pciSubClass")
    pci_device_id: str = _text("pciDeviceId")
    pci_bus_id: str = _text("pciBusId")
    pci_sub_system_id: str = _text("pciSubSystemId")
    pci_gpu_link_info: PciGpuLinkInfo = _section(PciGpuLinkInfo, "pciGPULinkInfo")
    pci_bridge_chip: PciBridgeChip = _section(PciBridgeChip, "pciBridgeChip")
    replay_counter: str = _text("replayCounter")
    replay_rollover_counter: str = _text("replayRolloverCounter")
    tx_util: str = _text("txUtil")
    rx_util: str = _text("rxUtil")
    atomic_caps_outbound: str = _text("atomicCapsOutbound")
    atomic_caps_inbound: str = _text("atomicCapsInbound")


@dataclass
class ClocksEventReasons(XmlSection):
    clocks_event_reason_gpu_idle: str = _text("clocksEventReasonGPUIdle")
    clocks_event_reason_applications_clocks_setting: str = _text(
        "clocksEventReasonApplicationsClocksSetting"
    )
    clocks_event_reason_sw_power_cap: str = _text("clocksEventReasonSwPowerCap")
    clocks_event_reason_hw_slowdown: str = _text("clocksEventReasonHwSlowdown")
    clocks_event_reason_hw_thermal_slowdown: str = _text("clocksEventReasonHwThermalSlowdown")
    clocks_event_reason_hw_power_brake_slowdown: str = _text(
        "clocksEventReasonHwPowerBrakeSlowdown"
    )
    clocks_event_reason_sync_boost: str = _text("clocksEventReasonSyncBoost")
    clocks_event_reason_sw_thermal_slowdown: str = _text("clocksEventReasonSwThermalSlowdown")
    clocks_event_reason_display_clocks_setting: str = _text(
        "clocksEventReasonDisplayClocksSetting"
    )


@dataclass
class FbMemoryUsage(XmlSection):
    total: str = _text("total")
    reserved: str = _text("reserved")
    used: str = _text("used")
    free: str = _text("free")


@dataclass
class _TotalUsedFree(XmlSection):
    total: str = _text("total")
    used: str = _text("used")
    free: str = _text("free")


@dataclass
class Bar1MemoryUsage(_TotalUsedFree):
    """BAR1 memory usage."""


@dataclass
class CcProtectedMemoryUsage(_TotalUsedFree):
    """Confidential-computing protected memory usage."""


@dataclass
class MemoryUsage(_TotalUsedFree):
    """Generic memory usage."""


@dataclass
class Utilization(XmlSection):
    gpu_util: str = _text("gpuUtil")
    memory_util: str = _text("memoryUtil")
    encoder_util: str = _text("encoderUtil")
    decoder_util: str = _text("decoderUtil")
    jpeg_util: str = _text("jpegUtil")
    ofa_util: str = _text("ofaUtil")


@dataclass
class _SessionStats(XmlSection):
    session_count: str = _text("sessionCount")
    average_fps: str = _text("averageFps")
    average_latency: str = _text("averageLatency")


@dataclass
class EncoderStats(_SessionStats):
    """Encoder session statistics."""


@dataclass
class FbcStats(_SessionStats):
    """Frame buffer capture session statistics."""


@dataclass
class DramEncryptionMode(XmlSection):
    current_dram_encryption: str = _text("currentDramEncryption")
    pending_dram_encryption: str = _text("pendingDramEncryption")


@dataclass
class EccMode(XmlSection):
    current_ecc: str = _text("currentEcc")
    pending_ecc: str = _text("pendingEcc")


@dataclass
class Volatile(XmlSection):
    sram_correctable: str = _text("sramCorrectable")
    sram_uncorrectable_parity: str = _text("sramUncorrectableParity")
    sram_uncorrectable_secded: str = _text("sramUncorrectableSecded")
    dram_correctable: str = _text("dramCorrectable")
    dram_uncorrectable: str = _text("dramUncorrectable")


@dataclass
class Aggregate(XmlSection):
    sram_correctable: str = _text("sramCorrectable")
    sram_uncorrectable_parity: str = _text("sramUncorrectableParity")
    sram_uncorrectable_secded: str = _text("sramUncorrectableSecded")
    dram_correctable: str = _text("dramCorrectable")
    dram_uncorrectable: str = _text("dramUncorrectable")
    sram_threshold_exceeded: str = _text("sramThresholdExceeded")


@dataclass
class AggregateUncorrectableSramSources(XmlSection):
    sram_l2: str = _text("sramL2")
    sram_sm: str = _text("sramSm")
    sram_microcontroller: str = _text("sramMicrocontroller")
    sram_pcie: str = _text("sramPcie")
    sram_other: str = _text("sramOther")


@dataclass
class EccErrors(XmlSection):
    volatile: Volatile = _section(Volatile, "volatile")
    aggregate: Aggregate = _section(Aggregate, "aggregate")
    aggregate_uncorrectable_sram_sources: AggregateUncorrectableSramSources = _section(
        AggregateUncorrectableSramSources, "aggregateUncorrectableSramSources"
    )


@dataclass
class _Retirement(XmlSection):
    retired_count: str = _text("retiredCount")
    retired_pagelist: str = _text("retiredPagelist")


@dataclass
class MultipleSingleBitRetirement(_Retirement):
    """Pages retired after multiple single-bit errors."""


@dataclass
class DoubleBitRetirement(_Retirement):
    """Pages retired after double-bit errors."""


@dataclass
class RetiredPages(XmlSection):
    multiple_single_bit_retirement: MultipleSingleBitRetirement = _section(
        MultipleSingleBitRetirement, "multipleSingleBitRetirement"
    )
    double_bit_retirement: DoubleBitRetirement = _section(
        DoubleBitRetirement, "doubleBitRetirement"
    )
    pending_blacklist: str = _text("pendingBlacklist")
    pending_retirement: str = _text("pendingRetirement")


@dataclass
class RowRemapperHistogram(XmlSection):
    row_remapper_histogram_max: str = _text("rowRemapperHistogramMax")
    row_remapper_histogram_high: str = _text("rowRemapperHistogramHigh")
    row_remapper_histogram_partial: str = _text("rowRemapperHistogramPartial")
    row_remapper_histogram_low: str = _text("rowRemapperHistogramLow")
    row_remapper_histogram_none: str = _text("rowRemapperHistogramNone")


@dataclass
class RemappedRows(XmlSection):
    remapped_row_corr: str = _text("remappedRowCorr")
    remapped_row_unc: str = _text("remappedRowUnc")
    remapped_row_pending: str = _text("remappedRowPending")
    remapped_row_failure: str = _text("remappedRowFailure")
    row_remapper_histogram: RowRemapperHistogram = _section(
        RowRemapperHistogram, "rowRemapperHistogram"
    )


@dataclass
class Temperature(XmlSection):
    gpu_temp: str = _text("gpuTemp")
    gpu_temp_tlimit: str = _text("gpuTempTlimit")
    gpu_temp_max_tlimit_threshold: str = _text("gpuTempMaxTlimitThreshold")
    gpu_temp_slow_tlimit_threshold: str = _text("gpuTempSlowTlimitThreshold")
    gpu_temp_max_gpu_tlimit_threshold: str = _text("gpuTempMaxGPUTlimitThreshold")
    gpu_target_temperature: str = _text("gpuTargetTemperature")
    memory_temp: str = _text("memoryTemp")
    gpu_temp_max_mem_tlimit_threshold: str = _text("gpuTempMaxMemTlimitThreshold")


@dataclass
class SupportedGpuTargetTemp(XmlSection):
    gpu_target_temp_min: str = _text("gpuTargetTempMin")
    gpu_target_temp_max: str = _text("gpuTargetTempMax")


@dataclass
class _PowerLimits(XmlSection):
    power_state: str = _text("powerState")
    power_draw: str = _text("powerDraw")
    current_power_limit: str = _text("currentPowerLimit")
    requested_power_limit: str = _text("requestedPowerLimit")
    default_power_limit: str = _text("defaultPowerLimit")
    min_power_limit: str = _text("minPowerLimit")
    max_power_limit: str = _text("maxPowerLimit")


@dataclass
class PowerReadings(_PowerLimits):
    """GPU power readings."""


@dataclass
class ModulePowerReadings(_PowerLimits):
    """Module power readings."""


@dataclass
class MemoryPowerReadings(XmlSection):
    power_draw: str = _text("powerDraw")


@dataclass
class PowerProfiles(XmlSection):
    power_profile_requested_profiles: str = _text("powerProfileRequestedProfiles")
    power_profile_enforced_profiles: str = _text("powerProfileEnforcedProfiles")


@dataclass
class _FullClocks(XmlSection):
    graphics_clock: str = _text("graphicsClock")
    sm_clock: str = _text("smClock")
    mem_clock: str = _text("memClock")
    video_clock: str = _text("videoClock")


@dataclass
class Clocks(_FullClocks):
    """Current clocks."""


@dataclass
class MaxClocks(_FullClocks):
    """Maximum clocks."""


@dataclass
class _GraphicsMemClocks(XmlSection):
    graphics_clock: str = _text("graphicsClock")
    mem_clock: str = _text("memClock")


@dataclass
class ApplicationsClocks(_GraphicsMemClocks):
    """Application clocks."""


@dataclass
class DefaultApplicationsClocks(_GraphicsMemClocks):
    """Default application clocks."""


@dataclass
class DeferredClocks(XmlSection):
    mem_clock: str = _text("memClock")


@dataclass
class MaxCustomerBoostClocks(XmlSection):
    graphics_clock: str = _text("graphicsClock")


@dataclass
class ClockPolicy(XmlSection):
    auto_boost: str = _text("autoBoost")
    auto_boost_default: str = _text("autoBoostDefault")


@dataclass
class Voltage(XmlSection):
    graphics_volt: str = _text("graphicsVolt")


@dataclass
class Health(XmlSection):
    bandwidth: str = _text("bandwidth")
    route_recovery_in_progress: str = _text("routeRecoveryInProgress")
    route_unhealthy: str = _text("routeUnhealthy")
    access_timeout_recovery: str = _text("accessTimeoutRecovery")


@dataclass
class Fabric(XmlSection):
    state: str = _text("state")
    status: str = _text("status")
    clique_id: str = _text("cliqueId", xml="cliqueId")
    cluster_uuid: str = _text("clusterUuid", xml="clusterUuid")
    health: Health = _section(Health, "health")


@dataclass
class SupportedMemClock(XmlSection):
    value: str = _text("value")
    supported_graphics_clock: str = _text("supportedGraphicsClock")


@dataclass
class SupportedClocks(XmlSection):
    supported_mem_clock: SupportedMemClock = _section(SupportedMemClock, "supportedMemClock")


@dataclass
class Capabilities(XmlSection):
    egm: str = _text("egm")