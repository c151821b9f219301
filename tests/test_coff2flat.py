import struct

import pytest

from nachos.coff import OMAGIC, AoutHeader, CoffFormatError, FileHeader, SectionHeader
from nachos.coff2flat import STACK_SIZE, convert, main

TEXT = struct.pack("<2I", 0x27BDFFF8, 0x0C000004)
DATA = b"abcd"


def build_coff(specs, aout_magic=OMAGIC):
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
    return (
        FileHeader(nscns=len(specs)).pack()
        + AoutHeader(magic=aout_magic).pack()
        + b"".join(h.pack() for h in headers)
        + b"".join(blobs)
    )


def test_sections_copied_and_stack_appended():
    bss_addr = len(TEXT) + len(DATA)
    bss_size = 16
    image = convert(build_coff([
        (".text", 0, TEXT),
        (".data", len(TEXT), DATA),
        (".bss", bss_addr, bss_size),
    ]))
    assert len(image) == bss_addr + bss_size + STACK_SIZE
    assert image[:bss_addr] == TEXT + DATA
    assert image[bss_addr:] == bytes(len(image) - bss_addr)


def test_custom_stack_size():
    image = convert(build_coff([(".text", 0, TEXT)]), stack_size=8)
    assert len(image) == len(TEXT) + 8
    assert image.startswith(TEXT)


def test_end_marker_overwrites_copied_data():
    first = b"\x11" * 8
    second = b"\x22" * 8
    image = convert(build_coff([(".text", 0, first), (".data", 0, second)]), stack_size=4)
    assert image == first + bytes(4) + second[4:]


def test_stack_too_small_rejected():
    with pytest.raises(ValueError):
        convert(build_coff([(".text", 0, TEXT)]), stack_size=2)


def test_wrong_aout_magic_rejected():
    with pytest.raises(CoffFormatError, match="OMAGIC"):
        convert(build_coff([(".text", 0, TEXT)], aout_magic=0x0701))


def test_main_writes_flat_file(tmp_path, capsys):
    source = tmp_path / "prog.coff"
    target = tmp_path / "prog.flat"
    coff = build_coff([(".text", 0, TEXT)])
    source.write_bytes(coff)
    assert main([str(source), str(target)]) == 0
    assert target.read_bytes() == convert(coff)
    out = capsys.readouterr().out
    assert f"Adding stack of size: {STACK_SIZE}" in out
    assert "Loading 1 sections:" in out


def test_main_reports_bad_file(tmp_path, capsys):
    source = tmp_path / "prog.coff"
    source.write_bytes(b"\0\0")
    assert main([str(source), str(tmp_path / "prog.flat")]) == 1
    assert "too short" in capsys.readouterr().err