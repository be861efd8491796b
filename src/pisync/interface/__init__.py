from pisync.interface.lakeflow_connect import LakeflowConnect

__all__ = ["LakeflowConnect"]
