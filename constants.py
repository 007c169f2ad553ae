import os

LINUX_MIRROR = "https://cdn.kernel.org/pub/linux/kernel/v{major}.x/"
UBOOT_MIRROR = "https://ftp.denx.de/pub/u-boot/"

LINUX_ARCHIVE_SUFFIX = ".tar.xz"
UBOOT_ARCHIVE_SUFFIX = ".tar.bz2"

ARCHIVE_SUFFIXES = [".tar.xz", ".tar.bz2", ".tar.gz", ".tgz"]

# Response codes meaning a transfer succeeded. 226 is sent by FTP servers.
SUCCESS_CODES = (200, 226)

HTTP_TIMEOUT        = 60
DOWNLOAD_CHUNK_SIZE = 64 * 1024

KDEB_PKGVERSION = "1"
DEB_MAKE_TARGET = "bindeb-pkg"
PACKAGES_DIR    = "packages"

MAINTAINER_ENV = "MAINTAINER"

EXIT_SUCCESS       = 0
EXIT_ERROR         = 2
EXIT_LOGGING_SETUP = 3
EXIT_NO_UPDATE     = 100
EXIT_INTERRUPTED   = -1

DEFAULT_JOBS = (os.cpu_count() or 1) + 2
