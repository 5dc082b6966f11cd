# main.py

import sys
import signal
import argparse
from pathlib import Path

# Add the src directory to the Python path
sys.path.insert(0, str(Path(__file__).resolve().parent))

import common
import arithmetic as arith
import console as con
import emulator as em

exit_ok = 0
exit_error = 1
exit_interrupted = 130

def parse_mem_range(text):
    """Parse a memory range written START-END in hex, e.g. 3000-3020."""
    try:
        start_str, end_str = text.split("-")
        start = int(start_str, 16)
        end = int(end_str, 16)
    except ValueError:
        raise argparse.ArgumentTypeError(f"bad memory range {text!r}, expected START-END in hex")
    if not (0 <= start <= end <= 0x10000):
        raise argparse.ArgumentTypeError(f"memory range {text!r} is outside x0000-x10000")
    return (start, end)

def parse_instruction_count(text):
    try:
        n = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"bad instruction count {text!r}")
    if n < 1:
        raise argparse.ArgumentTypeError(f"instruction count must be at least 1, got {n}")
    return n

def build_parser():
    parser = argparse.ArgumentParser(prog="lc3vm", description="LC-3 virtual machine")
    parser.add_argument("images", nargs="+", metavar="image-file",
                        help="Program image: big-endian words, the first word is the origin")
    parser.add_argument("--trace", action="store_true", help="Trace each instruction on stderr")
    parser.add_argument("--reg-dump", action="store_true", help="Dump registers after execution")
    parser.add_argument("--mem-dump", type=parse_mem_range, metavar="START-END",
                        help="Dump memory in the hex range START-END after execution")
    parser.add_argument("--max-instructions", type=parse_instruction_count, metavar="N",
                        help="Stop after N instructions if the program has not halted")
    parser.add_argument("--gui", action="store_true", help="Run in a window (needs PySide6)")
    return parser

# On SIGINT the terminal is put back the way it was before exiting

def install_interrupt_handler(terminal):
    def handle_interrupt(signum, frame):
        terminal.restore_original_mode()
        sys.stdout.write("\n")
        sys.stdout.flush()
        sys.exit(exit_interrupted)
    return signal.signal(signal.SIGINT, handle_interrupt)

def run_images(paths, console=None, terminal=None, max_instructions=None,
               dump_regs=False, mem_range=None):
    es = em.EmulatorState(console)
    try:
        em.boot_images(es, paths)
    except common.ImageLoadError as e:
        common.indicate_error(str(e))
        return exit_error

    terminal = con.TerminalMode() if terminal is None else terminal
    result = exit_ok
    old_handler = install_interrupt_handler(terminal)
    terminal.enable_raw_mode()
    try:
        icount = em.main_run(es, max_instructions)
        if not em.is_halted(es):
            common.mode.errlog(f"Stopped after {icount} instructions (limit reached)"
                               f" at x{arith.word_to_hex4(es.pc.get())}")
    except common.VMError as e:
        common.indicate_error(f"lc3vm: fatal: {e}")
        result = exit_error
    finally:
        terminal.restore_original_mode()
        signal.signal(signal.SIGINT, old_handler)

    if dump_regs:
        em.dump_registers(es)
    if mem_range:
        em.dump_memory(es, mem_range[0], mem_range[1])
    return result

def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.trace:
        common.mode.set_trace()
    try:
        if args.gui:
            import gui
            status = gui.start_gui(args.images)
        else:
            status = run_images(args.images,
                                max_instructions=args.max_instructions,
                                dump_regs=args.reg_dump,
                                mem_range=args.mem_dump)
    finally:
        common.mode.clear_trace()
    sys.exit(status)

if __name__ == "__main__":
    main()
