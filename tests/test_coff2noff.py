import struct

import pytest

from nachos.coff import (
    NOFFMAGIC,
    OMAGIC,
    AoutHeader,
    FileHeader,
    NoffHeader,
    NoffSegment,
    SectionHeader,
)
from nachos.coff2noff import ConversionError, convert, main

TEXT = struct.pack("<2I", 0x27BDFFF8, 0)
DATA = b"hi!\0"


def build_coff(specs, aout_magic=OMAGIC, file_magic=None):
    offset = FileHeader.SIZE + AoutHeader.SIZE + SectionHeader.SIZE * len(specs)
    headers = []
    blobs = []
    for name, addr, payload in specs:
        if isinstance(payload, int):
            headers.append(SectionHeader(name, paddr=addr, vaddr=addr, size=payload))
        else:
            headers.append(
                SectionHeader(name, paddr=addr, vaddr=addr, size=len(payload), scnptr=offset)
            )
            offset += len(payload)
            blobs.append(payload)
    file_header = FileHeader(nscns=len(specs))
    if file_magic is not None:
        file_header.magic = file_magic
    return (
        file_header.pack()
        + AoutHeader(magic=aout_magic).pack()
        + b"".join(h.pack() for h in headers)
        + b"".join(blobs)
    )


def test_segments_are_laid_out_after_header():
    coff = build_coff([(".text", 0, TEXT), (".data", 0x100, DATA), (".bss", 0x200, 32)])
    noff = convert(coff)
    header = NoffHeader.unpack(noff)
    assert header.magic == NOFFMAGIC
    assert header.code == NoffSegment(0, NoffHeader.SIZE, len(TEXT))
    assert header.init_data == NoffSegment(0x100, NoffHeader.SIZE + len(TEXT), len(DATA))
    assert header.uninit_data.virtual_addr == 0x200
    assert header.uninit_data.size == 32
    assert noff[NoffHeader.SIZE:] == TEXT + DATA


def test_rdata_counts_as_initialised_data():
    noff = convert(build_coff([(".text", 0, TEXT), (".rdata", 0x40, DATA)]))
    header = NoffHeader.unpack(noff)
    assert header.init_data.virtual_addr == 0x40
    assert header.init_data.size == len(DATA)


def test_empty_sections_are_skipped_even_if_unknown():
    noff = convert(build_coff([(".comment", 0, b"")]))
    assert noff == NoffHeader().pack()


def test_separate_bss_and_sbss_are_summed():
    header = NoffHeader.unpack(convert(build_coff([(".bss", 0x300, 16), (".sbss", 0x400, 8)])))
    assert header.uninit_data.virtual_addr == 0x300
    assert header.uninit_data.size == 16 + 8


def test_contiguous_bss_and_sbss_rejected():
    with pytest.raises(ConversionError, match="bss and sbss"):
        convert(build_coff([(".bss", 0x300, 16), (".sbss", 0x310, 8)]))


def test_data_and_rdata_together_rejected():
    with pytest.raises(ConversionError, match="data and rdata"):
        convert(build_coff([(".data", 0x100, DATA), (".rdata", 0x200, DATA)]))


def test_unknown_segment_rejected():
    with pytest.raises(ConversionError, match="Unknown segment type: .comment"):
        convert(build_coff([(".comment", 0, DATA)]))


def test_wrong_file_magic_rejected():
    with pytest.raises(ConversionError, match="MIPSEL"):
        convert(build_coff([], file_magic=0x1234))


def test_wrong_aout_magic_rejected():
    with pytest.raises(ConversionError, match="OMAGIC"):
        convert(build_coff([(".text", 0, TEXT)], aout_magic=0x0701))


def test_truncated_section_rejected():
    with pytest.raises(ConversionError, match="too short"):
        convert(build_coff([(".text", 0, TEXT)])[:-2])


def test_main_writes_noff_file(tmp_path, capsys):
    source = tmp_path / "prog.coff"
    target = tmp_path / "prog.noff"
    coff = build_coff([(".text", 0, TEXT), (".data", 0x100, DATA)])
    source.write_bytes(coff)
    assert main([str(source), str(target)]) == 0
    assert target.read_bytes() == convert(coff)
    out = capsys.readouterr().out
    assert "Loading 2 sections:" in out
    assert '".text"' in out


def test_main_removes_output_on_error(tmp_path, capsys):
    source = tmp_path / "prog.coff"
    target = tmp_path / "prog.noff"
    source.write_bytes(build_coff([(".comment", 0, DATA)]))
    target.write_bytes(b"old contents")
    assert main([str(source), str(target)]) == 1
    assert not target.exists()
    assert "Unknown segment type" in capsys.readouterr().err


def test_main_missing_input(tmp_path):
    assert main([str(tmp_path / "absent"), str(tmp_path / "out")]) == 1
    assert not (tmp_path / "out").exists()