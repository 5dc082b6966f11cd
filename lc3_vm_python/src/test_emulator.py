import struct

import pytest
from hypothesis import given, strategies as st

from emulator import EmulatorState
import emulator as em
import common
import architecture as arch
import arrbuf as ab
import console as con
import loader

# Instruction words used by the tests

def add_imm(dr, sr1, imm):
    return 0x1000 | (dr << 9) | (sr1 << 6) | 0x20 | (imm & 0x1F)

def add_reg(dr, sr1, sr2):
    return 0x1000 | (dr << 9) | (sr1 << 6) | sr2

def and_imm(dr, sr1, imm):
    return 0x5000 | (dr << 9) | (sr1 << 6) | 0x20 | (imm & 0x1F)

def not_(dr, sr):
    return 0x9000 | (dr << 9) | (sr << 6) | 0x3F

def br(nzp, offset):
    return (nzp << 9) | (offset & 0x1FF)

def pc9(op, r, offset):
    return (op << 12) | (r << 9) | (offset & 0x1FF)

def base6(op, r, base, offset):
    return (op << 12) | (r << 9) | (base << 6) | (offset & 0x3F)

def jsr(offset):
    return 0x4800 | (offset & 0x7FF)

def jsrr(base):
    return 0x4000 | (base << 6)

def jmp(base):
    return 0xC000 | (base << 6)

RET = 0xC1C0
HALT = 0xF025

def make_es(program, origin=0x3000, input_text=b""):
    es = EmulatorState(con.BufferConsole(input_text))
    image = struct.pack(f">{len(program) + 1}H", origin, *program)
    loader.load_image_bytes(es, image)
    em.boot(es, origin)
    em.start(es)
    return es

def reg(es, r):
    return es.regfile[r].get()

def set_reg(es, r, x):
    es.regfile[r].put(x)

def mem(es, a):
    return es.ab.read_mem16(es, a)

# ----------------------------------------------------------------------
# State
# ----------------------------------------------------------------------

def test_emulator_init():
    es = EmulatorState(con.BufferConsole(), ab)
    assert es is not None
    assert hasattr(es, 'ab')
    assert len(es.vec16) == ab.REG_SIZE + ab.MEM_SIZE
    assert es.vec32 is not None
    assert len(es.register) == arch.reg_count
    assert es.ab.show_scb_status(es) == "Reset"

def test_boot_sets_pc_and_condition():
    es = EmulatorState(con.BufferConsole())
    em.boot(es, 0x4000)
    assert es.pc.get() == 0x4000
    assert es.cond.get() == arch.FL_Z
    assert es.ab.show_scb_status(es) == "Ready"

def test_machines_are_independent():
    a = make_es([add_imm(0, 0, 5)])
    b = make_es([add_imm(0, 0, 7)])
    em.execute_instruction(a)
    assert reg(a, 0) == 5
    assert reg(b, 0) == 0

def test_pc_wraps_at_end_of_memory():
    es = make_es([add_imm(0, 0, 1)], origin=0xFFFF)
    em.execute_instruction(es)
    assert es.pc.get() == 0x0000

# ----------------------------------------------------------------------
# Operate instructions
# ----------------------------------------------------------------------

def test_add_immediate_negative():
    es = make_es([0x103F])  # ADD R0, R0, #-1
    em.execute_instruction(es)
    assert reg(es, 0) == 0xFFFF
    assert es.cond.get() == arch.FL_N
    assert es.pc.get() == 0x3001

def test_add_register_wraps():
    es = make_es([add_reg(3, 1, 2)])
    set_reg(es, 1, 0x7FFF)
    set_reg(es, 2, 0x0001)
    em.execute_instruction(es)
    assert reg(es, 3) == 0x8000
    assert es.cond.get() == arch.FL_N

def test_add_to_zero_sets_z():
    es = make_es([add_imm(1, 1, 1)])
    set_reg(es, 1, 0xFFFF)
    em.execute_instruction(es)
    assert reg(es, 1) == 0
    assert es.cond.get() == arch.FL_Z

def test_and_immediate_clears_register():
    es = make_es([and_imm(2, 2, 0)])
    set_reg(es, 2, 0x1234)
    em.execute_instruction(es)
    assert reg(es, 2) == 0
    assert es.cond.get() == arch.FL_Z

def test_and_immediate_sign_extends():
    es = make_es([and_imm(2, 1, -2)])
    set_reg(es, 1, 0x0F0F)
    em.execute_instruction(es)
    assert reg(es, 2) == 0x0F0E
    assert es.cond.get() == arch.FL_P

def test_not():
    es = make_es([not_(4, 5)])
    set_reg(es, 5, 0x00FF)
    em.execute_instruction(es)
    assert reg(es, 4) == 0xFF00
    assert es.cond.get() == arch.FL_N

@given(x=st.integers(min_value=0, max_value=0xFFFF),
       imm=st.integers(min_value=-16, max_value=15))
def test_add_immediate_result_and_flags(x, imm):
    es = make_es([add_imm(0, 1, imm)])
    set_reg(es, 1, x)
    em.execute_instruction(es)
    result = (x + imm) & 0xFFFF
    assert reg(es, 0) == result
    if result == 0:
        assert es.cond.get() == arch.FL_Z
    elif result & 0x8000:
        assert es.cond.get() == arch.FL_N
    else:
        assert es.cond.get() == arch.FL_P

# ----------------------------------------------------------------------
# Branches and jumps
# ----------------------------------------------------------------------

def test_branch_not_taken():
    es = make_es([br(0b100, 5)])  # BRn with COND = Z
    em.execute_instruction(es)
    assert es.pc.get() == 0x3001

def test_branch_taken():
    es = make_es([br(0b010, 5)])  # BRz with COND = Z
    em.execute_instruction(es)
    assert es.pc.get() == 0x3006

def test_branch_backwards():
    es = make_es([add_imm(0, 0, 0), br(0b111, -2)])
    em.execute_instruction(es)
    em.execute_instruction(es)
    assert es.pc.get() == 0x3000

def test_branch_with_no_condition_bits_is_a_no_op():
    es = make_es([br(0b000, 5)])
    em.execute_instruction(es)
    assert es.pc.get() == 0x3001

def test_jsr_and_ret():
    es = make_es([jsr(2), HALT, 0, RET])
    em.execute_instruction(es)
    assert es.pc.get() == 0x3003
    assert reg(es, 7) == 0x3001
    em.execute_instruction(es)
    assert es.pc.get() == 0x3001

def test_jsrr():
    es = make_es([jsrr(2)])
    set_reg(es, 2, 0x4000)
    em.execute_instruction(es)
    assert es.pc.get() == 0x4000
    assert reg(es, 7) == 0x3001

def test_jsrr_r7_jumps_to_old_r7():
    es = make_es([jsrr(7)])
    set_reg(es, 7, 0x5000)
    em.execute_instruction(es)
    assert es.pc.get() == 0x5000
    assert reg(es, 7) == 0x3001

def test_jmp():
    es = make_es([jmp(3)])
    set_reg(es, 3, 0x1234)
    em.execute_instruction(es)
    assert es.pc.get() == 0x1234

# ----------------------------------------------------------------------
# Loads and stores
# ----------------------------------------------------------------------

def test_ld():
    es = make_es([pc9(arch.OP_LD, 2, 1), HALT, 0x8001])
    em.execute_instruction(es)
    assert reg(es, 2) == 0x8001
    assert es.cond.get() == arch.FL_N

def test_ldi():
    # program at 90, so PC is 91 when LDI R1 runs and 91 + 9 = 100
    es = make_es([pc9(arch.OP_LDI, 1, 9)], origin=90)
    es.ab.write_mem16(es, 100, 200)
    es.ab.write_mem16(es, 200, 42)
    em.execute_instruction(es)
    assert reg(es, 1) == 42
    assert es.cond.get() == arch.FL_P

def test_ldr_negative_offset():
    es = make_es([base6(arch.OP_LDR, 1, 2, -1)])
    set_reg(es, 2, 0x4001)
    es.ab.write_mem16(es, 0x4000, 0)
    em.execute_instruction(es)
    assert reg(es, 1) == 0
    assert es.cond.get() == arch.FL_Z

def test_lea_sets_flags():
    es = make_es([pc9(arch.OP_LEA, 0, -2)])
    es.cond.put(arch.FL_N)
    em.execute_instruction(es)
    assert reg(es, 0) == 0x2FFF
    assert es.cond.get() == arch.FL_P

def test_st():
    es = make_es([pc9(arch.OP_ST, 3, 4)])
    set_reg(es, 3, 0xBEEF)
    em.execute_instruction(es)
    assert mem(es, 0x3005) == 0xBEEF

def test_sti():
    es = make_es([pc9(arch.OP_STI, 3, 1), HALT, 0x4000])
    set_reg(es, 3, 0x0042)
    em.execute_instruction(es)
    assert mem(es, 0x4000) == 0x0042

def test_str():
    es = make_es([base6(arch.OP_STR, 3, 4, 31)])
    set_reg(es, 3, 7)
    set_reg(es, 4, 0x4000)
    em.execute_instruction(es)
    assert mem(es, 0x401F) == 7

@pytest.mark.parametrize("instr", [
    pc9(arch.OP_ST, 0, 10),
    pc9(arch.OP_STI, 0, 0),
    base6(arch.OP_STR, 0, 1, 0),
    jmp(1),
    br(0b111, 3),
    jsr(3),
])
def test_condition_unchanged(instr):
    es = make_es([instr, 0x4000])
    set_reg(es, 1, 0x4000)
    es.cond.put(arch.FL_N)
    em.execute_instruction(es)
    assert es.cond.get() == arch.FL_N

# ----------------------------------------------------------------------
# Keyboard device registers
# ----------------------------------------------------------------------

KBSR_PTR = 0xFE00
KBDR_PTR = 0xFE02

def test_keyboard_status_with_key_waiting():
    es = make_es([pc9(arch.OP_LDI, 0, 2), pc9(arch.OP_LDI, 1, 2), HALT, KBSR_PTR, KBDR_PTR],
                 input_text=b"a")
    em.execute_instruction(es)
    assert reg(es, 0) == 0x8000
    assert es.cond.get() == arch.FL_N
    em.execute_instruction(es)
    assert reg(es, 1) == ord("a")

def test_keyboard_status_without_key():
    es = make_es([pc9(arch.OP_LDI, 0, 1), HALT, KBSR_PTR])
    em.execute_instruction(es)
    assert reg(es, 0) == 0
    assert es.cond.get() == arch.FL_Z

def test_instruction_fetch_does_not_poll_keyboard():
    es = make_es([jmp(1)], input_text=b"a")
    set_reg(es, 1, KBSR_PTR)
    em.execute_instruction(es)
    assert es.pc.get() == KBSR_PTR
    em.execute_instruction(es)
    assert es.console.key_ready()

# ----------------------------------------------------------------------
# Running
# ----------------------------------------------------------------------

def test_halt_stops_the_machine():
    es = make_es([add_imm(0, 0, 1), HALT, add_imm(0, 0, 1)])
    icount = em.main_run(es)
    assert icount == 2
    assert em.is_halted(es)
    assert reg(es, 0) == 1
    assert reg(es, 7) == 0x3002
    assert es.console.text() == "HALT\n"
    assert es.ab.read_instr_count(es) == 2
    # A halted machine does not execute further instructions
    assert em.instruction_looper(es) == 0
    assert reg(es, 0) == 1

def test_count_loop():
    # R0 = 5; loop: R0 = R0 - 1; BRp loop; HALT
    es = make_es([and_imm(0, 0, 0), add_imm(0, 0, 5), add_imm(0, 0, -1), br(0b001, -2), HALT])
    em.main_run(es)
    assert em.is_halted(es)
    assert reg(es, 0) == 0
    assert es.cond.get() == arch.FL_Z

def test_reserved_opcode_is_fatal():
    es = make_es([add_imm(0, 0, 1), 0xD000])
    with pytest.raises(common.IllegalOpcodeError) as excinfo:
        em.main_run(es)
    assert excinfo.value.address == 0x3001
    assert excinfo.value.opcode == arch.OP_RES
    assert es.ab.show_scb_status(es) == "Fault"
    assert reg(es, 0) == 1

def test_rti_is_fatal():
    es = make_es([0x8000])
    with pytest.raises(common.IllegalOpcodeError):
        em.main_run(es)

def test_unknown_trap_is_fatal():
    es = make_es([0xF0FF])
    with pytest.raises(common.UnknownTrapError) as excinfo:
        em.main_run(es)
    assert excinfo.value.vector == 0xFF
    assert "xFF" in str(excinfo.value)

def test_instruction_limit():
    es = make_es([br(0b111, -1)])
    icount = em.main_run(es, max_instructions=10)
    assert icount == 10
    assert em.is_running(es)
    assert es.pc.get() == 0x3000

def test_stop_request():
    es = make_es([br(0b111, -1)])
    em.start(es)
    em.request_stop(es)
    assert em.instruction_looper(es) == 0
    assert em.stop_requested(es)

def test_run_slice():
    es = make_es([br(0b111, -1)])
    assert em.run_slice(es, 25) == 25
    assert em.run_slice(es) == em.default_instr_slice_size

def test_trace_goes_to_stderr(capsys):
    es = make_es([0x103F, HALT])
    common.mode.set_trace()
    try:
        em.main_run(es)
    finally:
        common.mode.clear_trace()
    captured = capsys.readouterr()
    assert "x3000 103F ADD" in captured.err
    assert captured.out == ""

# ----------------------------------------------------------------------
# Booting from image files
# ----------------------------------------------------------------------

def write_image(path, origin, words):
    path.write_bytes(struct.pack(f">{len(words) + 1}H", origin, *words))
    return str(path)

def test_boot_images_uses_first_origin(tmp_path):
    a = write_image(tmp_path / "a.obj", 0x3000, [0x1020])
    b = write_image(tmp_path / "b.obj", 0x4000, [0x1234, 0x5678])
    es = EmulatorState(con.BufferConsole())
    assert em.boot_images(es, [a, b]) == 0x3000
    assert mem(es, 0x3000) == 0x1020
    assert mem(es, 0x4001) == 0x5678
    assert mem(es, 0x3001) == 0
    assert es.ab.show_scb_status(es) == "Ready"

def test_later_image_overwrites_earlier(tmp_path):
    a = write_image(tmp_path / "a.obj", 0x3000, [1, 2, 3])
    b = write_image(tmp_path / "b.obj", 0x3001, [9])
    es = EmulatorState(con.BufferConsole())
    em.boot_images(es, [a, b])
    assert [mem(es, 0x3000 + i) for i in range(3)] == [1, 9, 3]

def test_boot_images_without_images_starts_at_default():
    es = EmulatorState(con.BufferConsole())
    assert em.boot_images(es, []) == arch.pc_start

def test_boot_images_missing_file(tmp_path):
    es = EmulatorState(con.BufferConsole())
    with pytest.raises(common.ImageLoadError):
        em.boot_images(es, [str(tmp_path / "missing.obj")])
    assert es.ab.show_scb_status(es) == "Reset"

# ----------------------------------------------------------------------
# Dumps
# ----------------------------------------------------------------------

def test_dump_registers(capsys):
    es = make_es([0x103F])
    em.execute_instruction(es)
    em.dump_registers(es)
    out = capsys.readouterr().out
    assert "R0: FFFF (-1)" in out
    assert "PC: 3001" in out
    assert "COND: N" in out

def test_dump_memory(capsys):
    es = make_es([0x1020, 0x1234])
    em.dump_memory(es, 0x3000, 0x3002)
    out = capsys.readouterr().out
    assert "MEM[3000]: 1020 1234" in out
