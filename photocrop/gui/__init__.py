from photocrop.gui.editor import PhotoCropWindow, launch_gui

__all__ = ["PhotoCropWindow", "launch_gui"]
