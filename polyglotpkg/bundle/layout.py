from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class BundleLayout:
    """Directories inside the staging area of one packaging run."""

    root: Path
    vendor_subdir: str = "node_modules"

    @property
    def compiled_dir(self) -> Path:
        return self.root / "compiled"

    @property
    def dependencies_dir(self) -> Path:
        return self.root / "dependencies"

    @property
    def vendor_dir(self) -> Path:
        return self.dependencies_dir / self.vendor_subdir

    @property
    def bundle_dir(self) -> Path:
        return self.root / "bundle"

    @property
    def bundled_vendor_dir(self) -> Path:
        return self.bundle_dir / self.vendor_subdir

    def all_dirs(self) -> list[Path]:
        return [
            self.root,
            self.compiled_dir,
            self.dependencies_dir,
            self.bundle_dir,
        ]
