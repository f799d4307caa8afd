"""
Deny-by-default syscall profile for sandbox containers.

The profile is handed to docker inline (``seccomp=<json>``). Anything not
on the allow-list fails with EPERM. The list covers what a shell, coreutils
``timeout``, gcc/as/ld and an ordinary C program need.
"""

import json
from pathlib import Path
from typing import Iterable, List

ALLOWED_SYSCALLS = (
    # file and descriptor I/O
    "read", "write", "readv", "writev", "pread64", "pwrite64", "lseek",
    "open", "openat", "openat2", "creat", "close", "close_range", "dup",
    "dup2", "dup3", "pipe", "pipe2", "fcntl", "ioctl", "flock", "fsync",
    "fdatasync", "ftruncate", "truncate", "sendfile", "copy_file_range",
    "fadvise64", "getdents", "getdents64", "poll", "ppoll", "select",
    "pselect6", "epoll_create1", "epoll_ctl", "epoll_wait", "epoll_pwait",
    # filesystem metadata
    "stat", "fstat", "lstat", "newfstatat", "statx", "statfs", "fstatfs",
    "access", "faccessat", "faccessat2", "readlink", "readlinkat", "getcwd",
    "chdir", "fchdir", "mkdir", "mkdirat", "rmdir", "unlink", "unlinkat",
    "rename", "renameat", "renameat2", "link", "linkat", "symlink",
    "symlinkat", "chmod", "fchmod", "fchmodat", "umask", "utimensat",
    "getxattr", "lgetxattr", "fgetxattr",
    # memory
    "brk", "mmap", "munmap", "mremap", "mprotect", "madvise", "mlock",
    "munlock", "membarrier",
    # process lifecycle
    "execve", "execveat", "clone", "clone3", "fork", "vfork", "wait4",
    "waitid", "exit", "exit_group", "kill", "tgkill", "tkill", "getpid",
    "getppid", "gettid", "getpgrp", "getpgid", "setpgid", "getsid",
    "setsid", "set_tid_address", "set_robust_list", "get_robust_list",
    "rseq", "prctl", "arch_prctl", "prlimit64", "getrlimit", "setrlimit",
    "getrusage", "sched_getaffinity", "sched_yield", "futex",
    # credentials (read-mostly; capabilities are dropped anyway)
    "getuid", "geteuid", "getgid", "getegid", "getresuid", "getresgid",
    "getgroups", "capget", "capset", "setuid", "setgid", "setgroups",
    "setresuid", "setresgid",
    # signals
    "rt_sigaction", "rt_sigprocmask", "rt_sigreturn", "rt_sigsuspend",
    "rt_sigtimedwait", "sigaltstack", "restart_syscall", "alarm",
    "setitimer", "getitimer", "pause",
    # time and system information
    "clock_gettime", "clock_getres", "clock_nanosleep", "nanosleep",
    "gettimeofday", "time", "times", "uname", "sysinfo", "getrandom",
    "memfd_create",
)

ARCHITECTURES = ["SCMP_ARCH_X86_64", "SCMP_ARCH_X86", "SCMP_ARCH_AARCH64"]


def build_profile(extra_allow: Iterable[str] = ()) -> dict:
    names = sorted(set(ALLOWED_SYSCALLS) | set(extra_allow))
    return {
        "defaultAction": "SCMP_ACT_ERRNO",
        "architectures": ARCHITECTURES,
        "syscalls": [{
            "names": names,
            "action": "SCMP_ACT_ALLOW",
        }],
    }


def load_profile(path: str | Path) -> dict:
    """
    Read a profile from JSON.

    Accepts either a docker seccomp profile or a short policy of the form
    ``{"allow": [...]}``, which is expanded onto the built-in allow-list.
    """
    cfg = json.loads(Path(path).read_text())
    if "defaultAction" in cfg:
        return cfg
    allow = [x.strip().rstrip(";") for x in (cfg.get("allow") or [])]
    return build_profile(allow)


def security_opt(profile: dict | None) -> List[str]:
    opts = ["no-new-privileges"]
    if profile is not None:
        opts.append("seccomp=" + json.dumps(profile, separators=(",", ":")))
    return opts
